from fastapi import APIRouter, Depends, Response
from framework.dependencies import get_uow
from framework.repository.unit_of_work import UnitOfWork
from framework.response import ResponseModel
from framework.security import create_access_token, USER_TOKEN_SCOPES
from framework.config import settings
from ..cache import ProfileCache, get_profile_cache
from ..service import ProfileService
from pydantic import BaseModel
from typing import Optional
from datetime import timedelta

router = APIRouter()

class RegisterSchema(BaseModel):
    email: str
    password: str
    given_names: str
    family_name: Optional[str] = None
    activities_visibility_default: Optional[str] = None

class LoginSchema(BaseModel):
    login: str  # email or ORCID iD
    password: str

def get_profile_service(
    uow: UnitOfWork = Depends(get_uow),
    cache: ProfileCache = Depends(get_profile_cache)
) -> ProfileService:
    """Dependency: create ProfileService."""
    return ProfileService(uow, cache)

@router.post("/register")
async def register(
    data: RegisterSchema,
    service: ProfileService = Depends(get_profile_service)
):
    """Register a new researcher record."""
    profile = await service.register(
        data.email,
        data.password,
        data.given_names,
        family_name=data.family_name,
        activities_visibility_default=data.activities_visibility_default,
    )
    return ResponseModel.success(data={
        "orcid": profile.orcid,
        "uri": f"{settings.ORCID_BASE_URI}/{profile.orcid}",
        "email": profile.email,
    })

@router.post("/login")
async def login(
    data: LoginSchema,
    response: Response,
    service: ProfileService = Depends(get_profile_service)
):
    """Login: return JWT and set cookie."""
    profile = await service.authenticate(data.login, data.password)
    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": profile.orcid, "scopes": USER_TOKEN_SCOPES},
        expires_delta=expires_delta
    )

    response.set_cookie(
        key=settings.ACCESS_TOKEN_COOKIE_NAME,
        value=access_token,
        max_age=int(expires_delta.total_seconds()),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE
    )

    return ResponseModel.success(
        data={
            "access_token": access_token,
            "token_type": "bearer",
            "orcid": profile.orcid,
            "name": " ".join(filter(None, [profile.given_names, profile.family_name])),
        }
    )

@router.post("/logout")
async def logout(response: Response):
    """Logout: clear token cookie."""
    response.delete_cookie(
        key=settings.ACCESS_TOKEN_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE
    )
    return ResponseModel.success(data={"message": "Logged out successfully"})
