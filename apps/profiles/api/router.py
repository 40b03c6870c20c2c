from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Optional
from framework.response import ResponseModel
from framework.security import CurrentUser, Scope, get_current_user, get_optional_user, require_owner, require_record_access
from .auth_router import get_profile_service
from ..service import ProfileService
from ..visibility import allowed_visibilities

router = APIRouter()

class ProfileUpdateSchema(BaseModel):
    given_names: Optional[str] = None
    family_name: Optional[str] = None
    credit_name: Optional[str] = None
    biography: Optional[str] = None
    names_visibility: Optional[str] = None
    biography_visibility: Optional[str] = None

class VisibilityDefaultSchema(BaseModel):
    visibility: str

class ClaimSchema(BaseModel):
    password: str

@router.get("/{orcid}")
async def get_record(
    orcid: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Record view filtered by what the caller may see."""
    return ResponseModel.success(data=await service.get_record_view(orcid, viewer))

@router.put("/{orcid}")
async def update_record(
    orcid: str,
    data: ProfileUpdateSchema,
    user: CurrentUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    require_record_access(user, orcid, Scope.PERSON_UPDATE)
    profile = await service.update_profile(orcid, data.model_dump(exclude_none=True))
    return ResponseModel.success(data=service.build_view(profile, allowed_visibilities(user, orcid), owner=user.is_owner(orcid)))

@router.put("/{orcid}/visibility-default")
async def update_visibility_default(
    orcid: str,
    data: VisibilityDefaultSchema,
    user: CurrentUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    require_owner(user, orcid)
    profile = await service.update_activities_visibility_default(orcid, data.visibility)
    return ResponseModel.success(data={"orcid": orcid, "activities_visibility_default": profile.activities_visibility_default})

@router.post("/{orcid}/claim")
async def claim_record(
    orcid: str,
    data: ClaimSchema,
    service: ProfileService = Depends(get_profile_service)
):
    """Claim a record provisioned on the researcher's behalf by setting a password."""
    profile = await service.claim(orcid, data.password)
    return ResponseModel.success(data={"orcid": profile.orcid, "claimed": profile.claimed})

@router.post("/{orcid}/deactivate")
async def deactivate_record(
    orcid: str,
    user: CurrentUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    require_owner(user, orcid)
    profile = await service.deactivate(orcid)
    return ResponseModel.success(data={"orcid": profile.orcid, "deactivated": True})
