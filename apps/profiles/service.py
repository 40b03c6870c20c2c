from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlalchemy.exc import IntegrityError
from framework.logging.logger import get_logger
from framework.exceptions.handler import BusinessException
from framework.repository.unit_of_work import UnitOfWork
from framework.security import CurrentUser, get_password_hash, verify_password
from framework.config import settings
from .cache import ProfileCache
from .exceptions import (
    AlreadyClaimedException,
    EmailAlreadyRegisteredException,
    InvalidCredentialsException,
    ProfileDeactivatedException,
    ProfileNotFoundException,
)
from .models import Profile
from .orcid_id import generate_orcid_id
from .repository import ProfileRepository
from .visibility import Visibility, allowed_visibilities, parse_visibility

logger = get_logger("profile_service")

MIN_PASSWORD_LENGTH = 8
EDITABLE_FIELDS = ("given_names", "family_name", "credit_name", "biography")
VISIBILITY_FIELDS = ("names_visibility", "biography_visibility")


class ProfileService:
    """Researcher records: registration, claiming, login and visibility-aware views."""

    def __init__(self, uow: UnitOfWork, cache: Optional[ProfileCache] = None):
        self.uow = uow
        self.cache = cache or ProfileCache(None)

    @property
    def repo(self) -> ProfileRepository:
        return self.uow.get_repository(ProfileRepository)

    async def _new_orcid_id(self) -> str:
        max_retries = 5
        for retry_count in range(max_retries):
            candidate = generate_orcid_id()
            if not await self.repo.exists(candidate):
                return candidate
            logger.warning(f"ORCID iD collision detected, regenerating ({retry_count + 1}/{max_retries})")
        logger.error(f"Failed to generate unique ORCID iD after {max_retries} attempts")
        raise BusinessException("Registration failed: could not allocate an iD, please retry later", code=500)

    @staticmethod
    def _check_password(password: str) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise BusinessException(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", code=422
            )

    @staticmethod
    def _normalize_email(email: str) -> str:
        email = (email or "").strip().lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise BusinessException("Invalid email address", code=422)
        return email

    async def _create(self, profile: Profile) -> Profile:
        try:
            if await self.repo.get_by_email(profile.email):
                raise EmailAlreadyRegisteredException()
            profile.orcid = await self._new_orcid_id()
            await self.repo.create(profile)
            await self.uow.commit()
            return profile
        except BusinessException:
            await self.uow.rollback()
            raise
        except IntegrityError as e:
            await self.uow.rollback()
            error_msg = str(e.orig) if hasattr(e, "orig") else str(e)
            if "email" in error_msg.lower():
                logger.warning(f"Email {profile.email} already exists")
                raise EmailAlreadyRegisteredException()
            logger.error(f"Database integrity error: {error_msg}")
            raise BusinessException("Registration failed: data conflict", code=409)

    async def register(
        self,
        email: str,
        password: str,
        given_names: str,
        family_name: Optional[str] = None,
        activities_visibility_default: Optional[str] = None,
    ) -> Profile:
        """Register a claimed record."""
        self._check_password(password)
        if not given_names or not given_names.strip():
            raise BusinessException("Given names are required", code=422)
        default_visibility = self._visibility(activities_visibility_default or settings.DEFAULT_ACTIVITIES_VISIBILITY)

        profile = Profile(
            orcid="",
            email=self._normalize_email(email),
            hashed_password=get_password_hash(password),
            given_names=given_names.strip(),
            family_name=family_name.strip() if family_name else None,
            activities_visibility_default=default_visibility,
            claimed=True,
        )
        profile = await self._create(profile)
        logger.info(f"Record {profile.orcid} registered")
        return profile

    async def create_unclaimed(self, email: str, given_names: str, family_name: Optional[str] = None) -> Profile:
        """Provision a record on behalf of a researcher; it stays unclaimed until they set a password."""
        if not given_names or not given_names.strip():
            raise BusinessException("Given names are required", code=422)
        profile = Profile(
            orcid="",
            email=self._normalize_email(email),
            given_names=given_names.strip(),
            family_name=family_name.strip() if family_name else None,
            activities_visibility_default=self._visibility(settings.DEFAULT_ACTIVITIES_VISIBILITY),
            claimed=False,
        )
        profile = await self._create(profile)
        logger.info(f"Unclaimed record {profile.orcid} created")
        return profile

    async def claim(self, orcid: str, password: str) -> Profile:
        self._check_password(password)
        profile = await self.get_profile(orcid)
        if profile.claimed:
            raise AlreadyClaimedException(orcid)
        profile.hashed_password = get_password_hash(password)
        profile.claimed = True
        profile.last_modified = datetime.now(timezone.utc)
        await self.repo.update(profile)
        await self.uow.commit()
        await self.cache.evict(orcid)
        logger.info(f"Record {orcid} claimed")
        return profile

    async def authenticate(self, login: str, password: str) -> Profile:
        """Authenticate by email or ORCID iD."""
        login = (login or "").strip()
        if "@" in login:
            profile = await self.repo.get_by_email(login)
        else:
            profile = await self.repo.get_by_id(login)
        if not profile or not profile.claimed or not profile.hashed_password:
            raise InvalidCredentialsException()
        if not verify_password(password, profile.hashed_password):
            raise InvalidCredentialsException()
        if profile.is_deactivated:
            raise ProfileDeactivatedException(profile.orcid)
        logger.info(f"Record {profile.orcid} authenticated successfully")
        return profile

    async def get_profile(self, orcid: str) -> Profile:
        profile = await self.repo.get_by_id(orcid)
        if not profile:
            raise ProfileNotFoundException(orcid)
        return profile

    async def get_active_profile(self, orcid: str) -> Profile:
        profile = await self.get_profile(orcid)
        if profile.is_deactivated:
            raise ProfileDeactivatedException(orcid)
        return profile

    @staticmethod
    def build_view(profile: Profile, visible: set, owner: bool = False) -> Dict[str, Any]:
        """Record view with every field filtered by its visibility."""
        view: Dict[str, Any] = {
            "orcid": profile.orcid,
            "uri": f"{settings.ORCID_BASE_URI}/{profile.orcid}",
            "deactivated": profile.is_deactivated,
            "claimed": profile.claimed,
        }
        if profile.is_deactivated:
            return view
        if profile.names_visibility in visible:
            view["given_names"] = profile.given_names
            view["family_name"] = profile.family_name
            view["credit_name"] = profile.credit_name
        if profile.biography_visibility in visible:
            view["biography"] = profile.biography
        if owner:
            view.update({
                "email": profile.email,
                "names_visibility": profile.names_visibility,
                "biography_visibility": profile.biography_visibility,
                "activities_visibility_default": profile.activities_visibility_default,
                "last_modified": profile.last_modified.isoformat(),
            })
        return view

    async def get_record_view(self, orcid: str, viewer: Optional[CurrentUser] = None) -> Dict[str, Any]:
        visible = allowed_visibilities(viewer, orcid)
        public_only = visible == {Visibility.PUBLIC.value}
        if public_only:
            cached = await self.cache.get(orcid)
            if cached is not None:
                return cached

        profile = await self.get_profile(orcid)
        view = self.build_view(profile, visible, owner=viewer is not None and viewer.is_owner(orcid))
        if public_only:
            await self.cache.set(orcid, view)
        return view

    @staticmethod
    def _visibility(value: Optional[str]) -> Optional[str]:
        try:
            return parse_visibility(value)
        except ValueError:
            raise BusinessException(f"Invalid visibility: {value}", code=422)

    async def update_profile(self, orcid: str, changes: Dict[str, Any]) -> Profile:
        """Update names, biography and their visibilities; None values are left untouched."""
        profile = await self.get_active_profile(orcid)
        for field in EDITABLE_FIELDS:
            if field in changes and changes[field] is not None:
                value = changes[field].strip()
                if field == "given_names" and not value:
                    raise BusinessException("Given names are required", code=422)
                setattr(profile, field, value or None)
        for field in VISIBILITY_FIELDS:
            if changes.get(field) is not None:
                setattr(profile, field, self._visibility(changes[field]))
        profile.last_modified = datetime.now(timezone.utc)
        await self.repo.update(profile)
        await self.uow.commit()
        await self.cache.evict(orcid)
        logger.info(f"Record {orcid} updated")
        return profile

    async def update_activities_visibility_default(self, orcid: str, visibility: str) -> Profile:
        profile = await self.get_active_profile(orcid)
        profile.activities_visibility_default = self._visibility(visibility)
        profile.last_modified = datetime.now(timezone.utc)
        await self.repo.update(profile)
        await self.uow.commit()
        logger.info(f"Record {orcid} default activities visibility set to {profile.activities_visibility_default}")
        return profile

    async def deactivate(self, orcid: str) -> Profile:
        """Deactivate a record: personal data and works are removed, the iD stays reserved."""
        from apps.works.repository import WorkRepository

        profile = await self.get_active_profile(orcid)
        try:
            removed = await self.uow.get_repository(WorkRepository).remove_all(orcid)
            profile.deactivated_at = datetime.now(timezone.utc)
            profile.last_modified = profile.deactivated_at
            profile.given_names = ""  # NOT NULL column
            profile.family_name = None
            profile.credit_name = None
            profile.biography = None
            await self.repo.update(profile)
            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise
        await self.cache.evict(orcid)
        logger.info(f"Record {orcid} deactivated, {removed} work(s) removed")
        return profile
