from fastapi import APIRouter, Depends
from typing import Optional
from framework.dependencies import get_uow
from framework.repository.unit_of_work import UnitOfWork
from framework.response import ResponseModel
from framework.security import CurrentUser, Scope, get_current_user, get_optional_user, require_owner, require_record_access
from ..schemas import PutCodesSchema, VisibilityUpdateSchema, WorkBulkForm, WorkForm, work_to_dict
from ..service import WorkService

router = APIRouter()

def get_reader_service(
    uow: UnitOfWork = Depends(get_uow),
    viewer: Optional[CurrentUser] = Depends(get_optional_user)
) -> WorkService:
    """Dependency: WorkService for reads (anonymous callers allowed)."""
    return WorkService(uow, viewer)

def get_writer_service(
    uow: UnitOfWork = Depends(get_uow),
    current_user: CurrentUser = Depends(get_current_user)
) -> WorkService:
    """Dependency: WorkService for writes (authenticated callers only)."""
    return WorkService(uow, current_user)

def _parse_put_codes(raw: str) -> list:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        return []

@router.get("/{orcid}/works")
async def list_works(
    orcid: str,
    sort: str = "date",
    service: WorkService = Depends(get_reader_service)
):
    """Works of a record, grouped by shared identifiers and filtered by visibility."""
    groups = await service.get_grouped_works(orcid, service.current_user, sort=sort)
    last_modified = await service.get_last_modified(orcid)
    return ResponseModel.success(data={
        "orcid": orcid,
        "last_modified": last_modified.isoformat() if last_modified else None,
        "groups": groups,
    })

@router.post("/{orcid}/works")
async def create_work(
    orcid: str,
    payload: WorkForm,
    service: WorkService = Depends(get_writer_service)
):
    require_record_access(service.current_user, orcid, Scope.ACTIVITIES_UPDATE)
    work = await service.create_work(orcid, payload)
    return ResponseModel.success(data=work_to_dict(work))

@router.post("/{orcid}/works/bulk")
async def create_works(
    orcid: str,
    payload: WorkBulkForm,
    service: WorkService = Depends(get_writer_service)
):
    """Bulk create; each element of the response is a work or an error."""
    require_record_access(service.current_user, orcid, Scope.ACTIVITIES_UPDATE)
    results = await service.create_works(orcid, payload.bulk)
    return ResponseModel.success(data={"bulk": results})

@router.get("/{orcid}/works/bulk")
async def get_works(
    orcid: str,
    put_codes: str,
    service: WorkService = Depends(get_reader_service)
):
    codes = _parse_put_codes(put_codes)
    if not codes:
        return ResponseModel.error(message="put_codes must be a comma-separated list of integers", code=400)
    results = await service.get_works(orcid, codes, service.current_user)
    return ResponseModel.success(data={"bulk": results})

@router.post("/{orcid}/works/delete")
async def remove_works(
    orcid: str,
    payload: PutCodesSchema,
    user: CurrentUser = Depends(get_current_user),
    service: WorkService = Depends(get_writer_service)
):
    require_owner(user, orcid)
    removed = await service.remove_works(orcid, payload.put_codes)
    return ResponseModel.success(data={"removed": removed})

@router.put("/{orcid}/works/visibility")
async def update_visibilities(
    orcid: str,
    payload: VisibilityUpdateSchema,
    user: CurrentUser = Depends(get_current_user),
    service: WorkService = Depends(get_writer_service)
):
    require_owner(user, orcid)
    updated = await service.update_visibilities(orcid, payload.put_codes, payload.visibility)
    return ResponseModel.success(data={"updated": updated})

@router.post("/{orcid}/works/group")
async def group_works(
    orcid: str,
    payload: PutCodesSchema,
    user: CurrentUser = Depends(get_current_user),
    service: WorkService = Depends(get_writer_service)
):
    """Group the selected works under the owner's own version."""
    require_owner(user, orcid)
    works = await service.create_new_work_group(payload.put_codes, orcid)
    return ResponseModel.success(data=[work_to_dict(w) for w in works])

@router.get("/{orcid}/works/{put_code}")
async def get_work(
    orcid: str,
    put_code: int,
    service: WorkService = Depends(get_reader_service)
):
    """Work detail with contributors grouped by ORCID iD."""
    return ResponseModel.success(data=await service.get_work_extended(orcid, put_code, service.current_user))

@router.put("/{orcid}/works/{put_code}")
async def update_work(
    orcid: str,
    put_code: int,
    payload: WorkForm,
    service: WorkService = Depends(get_writer_service)
):
    require_record_access(service.current_user, orcid, Scope.ACTIVITIES_UPDATE)
    if payload.put_code is not None and payload.put_code != put_code:
        return ResponseModel.error(message="Put code in body does not match the URL", code=400)
    work = await service.update_work(orcid, put_code, payload)
    return ResponseModel.success(data=work_to_dict(work))

@router.delete("/{orcid}/works/{put_code}")
async def delete_work(
    orcid: str,
    put_code: int,
    service: WorkService = Depends(get_writer_service)
):
    require_record_access(service.current_user, orcid, Scope.ACTIVITIES_UPDATE)
    deleted = await service.check_source_and_remove_work(orcid, put_code)
    if not deleted:
        return ResponseModel.error(message=f"Unable to delete work {put_code}", code=500)
    return ResponseModel.success(data={"put_code": put_code, "deleted": True})

@router.put("/{orcid}/works/{put_code}/preferred")
async def set_preferred(
    orcid: str,
    put_code: int,
    user: CurrentUser = Depends(get_current_user),
    service: WorkService = Depends(get_writer_service)
):
    require_owner(user, orcid)
    if not await service.update_to_max_display(orcid, put_code):
        return ResponseModel.error(message=f"No work with put code {put_code} on record {orcid}", code=404)
    return ResponseModel.success(data={"put_code": put_code, "preferred": True})
