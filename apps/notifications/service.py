from datetime import datetime, timezone
from typing import Dict, List, Optional
from framework.exceptions.handler import BusinessException
from framework.logging.logger import get_logger
from framework.repository.unit_of_work import UnitOfWork
from framework.security import CurrentUser
from .models import ActionType, AmendedSection, Notification, NotificationType
from .repository import NotificationRepository

logger = get_logger("notification_service")


def amend_item(name: Optional[str], put_code, action: ActionType, item_type: str = "WORK") -> Dict:
    return {
        "item_name": name,
        "item_type": item_type,
        "put_code": str(put_code) if put_code is not None else None,
        "action_type": action.value,
    }


class NotificationService:
    """Amend notifications: persisted in the researcher's inbox, then emailed."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def repo(self) -> NotificationRepository:
        return self.uow.get_repository(NotificationRepository)

    async def send_amend_notification(
        self,
        orcid: str,
        section: AmendedSection,
        items: List[Dict],
        source: CurrentUser,
    ) -> Optional[Notification]:
        """Record an amendment made by a member client; the owner's own edits are not notified.

        The notification is added to the current unit of work; the caller commits.
        """
        if not source.is_api_request or not items:
            return None

        notification = Notification(
            orcid=orcid,
            notification_type=NotificationType.AMENDED.value,
            amended_section=section.value,
            items=items,
            source_client_id=source.client_id,
        )
        await self.repo.create(notification)
        await self._email(orcid, section, items, source.client_id)
        logger.info(f"Amend notification for {orcid}: {len(items)} item(s) by {source.client_id}")
        return notification

    async def _email(self, orcid: str, section: AmendedSection, items: List[Dict], client_id: str) -> None:
        """Optional email (failure does not affect main flow)."""
        from apps.profiles.models import Profile
        from apps.clients.models import ClientDetails
        from framework.notification.notifier import notify_record_amended

        profile = await self.uow.get(Profile, orcid)
        client = await self.uow.get(ClientDetails, client_id)
        try:
            await notify_record_amended(
                email_to=profile.email if profile else None,
                orcid=orcid,
                section=section.value,
                items=items,
                source_name=client.name if client else client_id,
            )
        except Exception as e:
            logger.warning(f"Failed to send amend email for {orcid}: {str(e)}")

    async def list_notifications(self, orcid: str, unread_only: bool = False, limit: int = 50, offset: int = 0) -> List[Notification]:
        return await self.repo.list_by_orcid(orcid, unread_only=unread_only, limit=limit, offset=offset)

    async def mark_read(self, orcid: str, notification_id: int) -> Notification:
        notification = await self.repo.find_one(id=notification_id, orcid=orcid)
        if not notification:
            raise BusinessException("Notification not found", code=404)
        if notification.read_at is None:
            notification.read_at = datetime.now(timezone.utc)
            await self.repo.update(notification)
            await self.uow.commit()
        return notification
