from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple
from sqlalchemy.exc import SQLAlchemyError
from framework.config import settings
from framework.exceptions.handler import BusinessException, exception_to_error
from framework.logging.logger import get_logger
from framework.repository.unit_of_work import UnitOfWork
from framework.security import CurrentUser
from apps.notifications.models import ActionType, AmendedSection
from apps.notifications.service import NotificationService, amend_item
from apps.profiles.models import Profile
from apps.profiles.service import ProfileService
from apps.profiles.visibility import Visibility, can_view, parse_visibility
from .exceptions import (
    DuplicatedActivityException,
    ExceedMaxNumberOfElementsException,
    MissingGroupableExternalIDException,
    TooManyElementsInBulkException,
    WorkNotFoundException,
    WrongSourceException,
)
from .grouping import SORT_KEYS, group_works, preferred_work
from .identifiers import Relationship, dump_external_ids, merge_external_ids
from .models import Work
from .repository import WorkRepository
from .schemas import WorkForm, apply_form, external_ids_of, work_extended, work_to_dict
from .validator import check_external_identifiers_for_duplicates, validate_work

logger = get_logger("work_service")

# Display index of new works: the owner's own additions rank above client additions
API_DISPLAY_INDEX = 0
UI_DISPLAY_INDEX = 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WorkService:
    """Works on researcher records: reads filtered by visibility, source-checked writes, grouping."""

    def __init__(
        self,
        uow: UnitOfWork,
        current_user: Optional[CurrentUser] = None,
        max_activities: Optional[int] = None,
        bulk_read_max: Optional[int] = None,
        bulk_write_max: Optional[int] = None,
    ):
        self.uow = uow
        self.current_user = current_user
        self.max_activities = max_activities or settings.MAX_ACTIVITIES
        self.bulk_read_max = bulk_read_max or settings.WORKS_BULK_READ_MAX
        self.bulk_write_max = bulk_write_max or settings.WORKS_BULK_WRITE_MAX
        self.notifications = NotificationService(uow)

    @property
    def repo(self) -> WorkRepository:
        return self.uow.get_repository(WorkRepository)

    # --- Sources ---

    def _require_user(self) -> CurrentUser:
        if self.current_user is None:
            raise BusinessException("Authentication required", code=401)
        return self.current_user

    def _active_source(self) -> str:
        user = self._require_user()
        return user.client_id or user.orcid

    def _is_api_request(self) -> bool:
        return self._require_user().is_api_request

    async def _client_name(self) -> Optional[str]:
        user = self._require_user()
        if not user.client_id:
            return None
        from apps.clients.models import ClientDetails
        client = await self.uow.get(ClientDetails, user.client_id)
        return client.name if client else user.client_id

    def _populate_source(self, work: Work) -> None:
        user = self._require_user()
        if user.client_id:
            work.client_source_id = user.client_id
            work.source_id = None
        else:
            work.source_id = user.orcid
            work.client_source_id = None

    def check_source_and_throw(self, work: Work) -> None:
        if work.source != self._active_source():
            raise WrongSourceException(work.id, work.source)

    @staticmethod
    def set_incoming_work_privacy(work: Work, profile: Profile, is_api_request: bool = True) -> None:
        incoming = work.visibility
        default = profile.activities_visibility_default
        if (is_api_request and profile.claimed) or (incoming is None and not is_api_request):
            work.visibility = default
        elif is_api_request and not profile.claimed and incoming is None:
            work.visibility = Visibility.PRIVATE.value

    @staticmethod
    def set_display_index_on_new_entity(work: Work, is_api_request: bool) -> None:
        work.display_index = API_DISPLAY_INDEX if is_api_request else UI_DISPLAY_INDEX

    async def _profile(self, orcid: str) -> Profile:
        return await ProfileService(self.uow).get_active_profile(orcid)

    async def _notify(self, orcid: str, work: Work, action: ActionType) -> None:
        await self.notifications.send_amend_notification(
            orcid, AmendedSection.WORK, [amend_item(work.title, work.id, action)], self._require_user()
        )

    # --- Reads ---

    async def find_works(self, orcid: str) -> List[Work]:
        return await self.repo.find_by_orcid(orcid)

    async def get_work(self, orcid: str, put_code: int) -> Work:
        work = await self.repo.get_work(orcid, put_code)
        if not work:
            raise WorkNotFoundException(orcid, put_code)
        return work

    async def get_visible_work(self, orcid: str, put_code: int, viewer: Optional[CurrentUser]) -> Work:
        work = await self.get_work(orcid, put_code)
        if not can_view(viewer, orcid, work.visibility, work.client_source_id):
            # Hidden works are indistinguishable from missing ones
            raise WorkNotFoundException(orcid, put_code)
        return work

    async def get_work_extended(self, orcid: str, put_code: int, viewer: Optional[CurrentUser] = None) -> Dict[str, Any]:
        return work_extended(await self.get_visible_work(orcid, put_code, viewer))

    async def get_works(self, orcid: str, put_codes: List[int], viewer: Optional[CurrentUser] = None) -> List[Dict[str, Any]]:
        """Bulk read; missing or hidden put codes yield error elements in place."""
        if len(put_codes) > self.bulk_read_max:
            raise TooManyElementsInBulkException(self.bulk_read_max)
        found = {w.id: w for w in await self.repo.find_by_put_codes(orcid, put_codes)}
        results = []
        for put_code in put_codes:
            work = found.get(put_code)
            if work is None or not can_view(viewer, orcid, work.visibility, work.client_source_id):
                results.append(exception_to_error(WorkNotFoundException(orcid, put_code)))
            else:
                results.append(work_to_dict(work))
        return results

    async def get_grouped_works(self, orcid: str, viewer: Optional[CurrentUser] = None, sort: str = "date") -> List[Dict]:
        if sort not in SORT_KEYS:
            raise BusinessException(f"Invalid sort key: {sort}", code=400)
        works = [
            w for w in await self.find_works(orcid)
            if can_view(viewer, orcid, w.visibility, w.client_source_id)
        ]
        return group_works(works, sort=sort)

    async def get_last_modified(self, orcid: str) -> Optional[datetime]:
        return await self.repo.last_modified(orcid)

    # --- Writes ---

    async def create_work(self, orcid: str, form: WorkForm, is_api_request: Optional[bool] = None) -> Work:
        if is_api_request is None:
            is_api_request = self._is_api_request()
        active_source = self._active_source()

        try:
            profile = await self._profile(orcid)
            form = validate_work(form, create=True, is_api_request=is_api_request)

            if is_api_request and not self._require_user().is_owner(orcid):
                existing_works = await self.find_works(orcid)
                if len(existing_works) + 1 > self.max_activities:
                    raise ExceedMaxNumberOfElementsException(self.max_activities)
                client_name = await self._client_name()
                for existing in existing_works:
                    check_external_identifiers_for_duplicates(form, existing, active_source, client_name)

            work = apply_form(form)
            work.orcid = orcid
            work.added_to_profile_date = _now()
            self._populate_source(work)
            self.set_incoming_work_privacy(work, profile, is_api_request)
            self.set_display_index_on_new_entity(work, is_api_request)

            await self.repo.create(work)
            await self.uow.flush()
            await self._notify(orcid, work, ActionType.CREATE)
            await self.uow.commit()
        except BusinessException:
            await self.uow.rollback()
            raise

        logger.info(f"Work {work.id} created on {orcid} by {active_source} | API: {is_api_request}")
        return work

    async def create_works(self, orcid: str, forms: List[WorkForm]) -> List[Dict[str, Any]]:
        """Bulk create; each element becomes the created work or an error, independently."""
        active_source = self._active_source()
        results: List[Dict[str, Any]] = []
        if not forms:
            return results

        try:
            profile = await self._profile(orcid)
            existing_works = await self.find_works(orcid)
            if len(existing_works) + len(forms) > self.max_activities:
                raise ExceedMaxNumberOfElementsException(self.max_activities)
            if len(forms) > self.bulk_write_max:
                raise TooManyElementsInBulkException(self.bulk_write_max)
            client_name = await self._client_name()

            existing_keys = self._existing_external_id_keys(existing_works, active_source)
            put_code_by_key: Dict[Tuple, int] = {}
            created: List[Work] = []

            for form in forms:
                try:
                    form = validate_work(form, create=True, is_api_request=True)
                    for ext_id in form.external_ids:
                        if ext_id.key() in existing_keys and ext_id.relationship == Relationship.SELF.value:
                            raise DuplicatedActivityException(client_name or active_source, put_code_by_key.get(ext_id.key()))

                    work = apply_form(form)
                    work.orcid = orcid
                    work.added_to_profile_date = _now()
                    self._populate_source(work)
                    self.set_incoming_work_privacy(work, profile, True)
                    self.set_display_index_on_new_entity(work, True)
                    async with self.uow.savepoint():
                        await self.repo.create(work)
                        await self.uow.flush()
                except Exception as e:
                    # One bad element never aborts the rest of the bulk
                    results.append(exception_to_error(e))
                    continue

                for ext_id in form.external_ids:
                    if ext_id.relationship != Relationship.PART_OF.value:
                        existing_keys.add(ext_id.key())
                    put_code_by_key[ext_id.key()] = work.id
                created.append(work)
                results.append(work_to_dict(work))

            if created:
                await self.notifications.send_amend_notification(
                    orcid,
                    AmendedSection.WORK,
                    [amend_item(w.title, w.id, ActionType.CREATE) for w in created],
                    self._require_user(),
                )
            await self.uow.commit()
        except BusinessException:
            await self.uow.rollback()
            raise

        logger.info(f"Bulk create on {orcid} by {active_source}: {len(created)}/{len(forms)} work(s) created")
        return results

    @staticmethod
    def _existing_external_id_keys(existing_works: List[Work], active_source: str) -> Set[Tuple]:
        """Identifiers already added by this source, except `part-of` ones."""
        keys: Set[Tuple] = set()
        for work in existing_works:
            if work.source != active_source:
                continue
            for ext_id in external_ids_of(work):
                if ext_id.relationship != Relationship.PART_OF.value:
                    keys.add(ext_id.key())
        return keys

    async def update_work(self, orcid: str, put_code: int, form: WorkForm, is_api_request: Optional[bool] = None) -> Work:
        if is_api_request is None:
            is_api_request = self._is_api_request()
        active_source = self._active_source()

        try:
            work = await self.get_work(orcid, put_code)
            original_visibility = work.visibility
            form = validate_work(
                form,
                create=False,
                is_api_request=is_api_request,
                original_visibility=original_visibility if is_api_request else None,
            )

            if is_api_request:
                client_name = await self._client_name()
                for existing in await self.find_works(orcid):
                    if existing.id != put_code:
                        check_external_identifiers_for_duplicates(form, existing, active_source, client_name)

            self.check_source_and_throw(work)
            apply_form(form, work)
            if work.visibility is None:
                work.visibility = original_visibility
            work.last_modified = _now()

            await self.repo.update(work)
            await self.uow.flush()
            await self._notify(orcid, work, ActionType.UPDATE)
            await self.uow.commit()
        except BusinessException:
            await self.uow.rollback()
            raise

        logger.info(f"Work {put_code} on {orcid} updated by {active_source}")
        return work

    async def check_source_and_remove_work(self, orcid: str, put_code: int) -> bool:
        work = await self.get_work(orcid, put_code)
        self.check_source_and_throw(work)
        try:
            await self.repo.delete_entity(work)
            await self.uow.flush()
            await self._notify(orcid, work, ActionType.DELETE)
            await self.uow.commit()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            logger.error(f"Unable to delete work with ID: {put_code} ({str(e)})")
            return False
        logger.info(f"Work {put_code} removed from {orcid} by {self._active_source()}")
        return True

    async def remove_works(self, orcid: str, put_codes: List[int]) -> bool:
        removed = await self.repo.remove_works(orcid, put_codes)
        await self.uow.commit()
        logger.info(f"{removed} work(s) removed from {orcid}")
        return removed > 0

    async def remove_all_works(self, orcid: str) -> int:
        removed = await self.repo.remove_all(orcid)
        await self.uow.commit()
        logger.info(f"All {removed} work(s) removed from {orcid}")
        return removed

    async def update_visibilities(self, orcid: str, put_codes: List[int], visibility: str) -> bool:
        try:
            visibility = parse_visibility(visibility)
        except ValueError:
            raise BusinessException(f"Invalid visibility: {visibility}", code=422)
        if visibility is None:
            raise BusinessException("Visibility is required", code=422)
        updated = await self.repo.update_visibilities(orcid, put_codes, visibility, _now())
        await self.uow.commit()
        return updated > 0

    async def update_to_max_display(self, orcid: str, put_code: int) -> bool:
        """Make a work the preferred version of its group."""
        work = await self.repo.get_work(orcid, put_code)
        if not work:
            return False
        work.display_index = await self.repo.max_display_index(orcid) + 1
        work.last_modified = _now()
        await self.repo.update(work)
        await self.uow.commit()
        return True

    async def create_new_work_group(self, put_codes: List[int], orcid: str) -> List[Work]:
        """Make the given works group together by giving the owner's version all of their identifiers.

        Returns the works that now carry the merged identifiers.
        """
        works = await self.repo.find_by_put_codes(orcid, put_codes)
        ordered = sorted(works, key=lambda w: put_codes.index(w.id))
        merged = merge_external_ids(external_ids_of(w) for w in ordered)
        if not any(ext_id.is_groupable for ext_id in merged):
            raise MissingGroupableExternalIDException()
        merged_json = dump_external_ids(merged)

        user_versions = [w for w in ordered if w.source_id == orcid and not w.client_source_id]
        now = _now()
        if user_versions:
            for work in user_versions:
                work.external_ids = list(merged_json)
                work.last_modified = now
                await self.repo.update(work)
            affected = user_versions
        else:
            copy = self._copy_of_preferred(preferred_work(ordered), orcid, now)
            copy.external_ids = merged_json
            await self.repo.create(copy)
            affected = [copy]

        await self.uow.commit()
        logger.info(f"Grouped works {put_codes} on {orcid} ({len(merged)} identifiers)")
        return affected

    @staticmethod
    def _copy_of_preferred(preferred: Work, orcid: str, now: datetime) -> Work:
        return Work(
            orcid=preferred.orcid,
            title=preferred.title,
            subtitle=preferred.subtitle,
            translated_title=preferred.translated_title,
            translated_title_language_code=preferred.translated_title_language_code,
            journal_title=preferred.journal_title,
            short_description=preferred.short_description,
            citation=preferred.citation,
            citation_type=preferred.citation_type,
            work_type=preferred.work_type,
            publication_date=preferred.publication_date,
            url=preferred.url,
            language_code=preferred.language_code,
            iso2_country=preferred.iso2_country,
            contributors=list(preferred.contributors or []),
            visibility=preferred.visibility,
            display_index=preferred.display_index - 1,
            source_id=orcid,
            added_to_profile_date=now,
            date_created=now,
            last_modified=now,
        )
