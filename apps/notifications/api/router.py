from fastapi import APIRouter, Depends
from framework.dependencies import get_uow
from framework.repository.unit_of_work import UnitOfWork
from framework.response import ResponseModel
from framework.security import CurrentUser, get_current_user
from ..service import NotificationService

router = APIRouter()

def get_notification_service(uow: UnitOfWork = Depends(get_uow)) -> NotificationService:
    return NotificationService(uow)

@router.get("")
async def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
    user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    """Inbox of the signed-in researcher (owner sessions only)."""
    if user.is_api_request:
        return ResponseModel.error(message="Notifications are only available to the record owner", code=403)
    notifications = await service.list_notifications(user.orcid, unread_only=unread_only, limit=limit, offset=offset)
    return ResponseModel.success(data=[n.model_dump() for n in notifications])

@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    if user.is_api_request:
        return ResponseModel.error(message="Notifications are only available to the record owner", code=403)
    notification = await service.mark_read(user.orcid, notification_id)
    return ResponseModel.success(data=notification.model_dump())
