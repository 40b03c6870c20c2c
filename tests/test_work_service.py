"""WorkService test cases: incoming privacy, display index, duplicates, bulk, updates, removal and grouping."""
import pytest
from sqlalchemy.exc import DataError, OperationalError
from sqlmodel.ext.asyncio.session import AsyncSession
from framework.exceptions.handler import BusinessException
from framework.repository.unit_of_work import UnitOfWork
from apps.notifications.service import NotificationService
from apps.works.exceptions import (
    ActivityValidationException,
    DuplicatedActivityException,
    ExceedMaxNumberOfElementsException,
    InvalidPutCodeException,
    MissingGroupableExternalIDException,
    TooManyElementsInBulkException,
    VisibilityMismatchException,
    WorkNotFoundException,
    WrongSourceException,
)
from apps.profiles.models import Profile
from apps.works.models import Work
from apps.works.schemas import WorkForm
from apps.works.service import API_DISPLAY_INDEX, UI_DISPLAY_INDEX, WorkService
from conftest import (
    CLIENT_ID,
    OTHER_CLIENT_ID,
    OWNER_ORCID,
    UNCLAIMED_ORCID,
    add_work,
    ext,
    member_user,
    owner_user,
)


def doi(value: str, relationship: str = "self") -> dict:
    return {"type": "doi", "value": value, "relationship": relationship}


def article(title: str = "Crackle patterns", *ext_ids, **fields) -> WorkForm:
    return WorkForm(
        title=title,
        work_type="journal-article",
        external_ids=list(ext_ids) or [doi("10.1000/crackle")],
        **fields,
    )


def service_for(session: AsyncSession, user, **kwargs) -> WorkService:
    return WorkService(UnitOfWork(session=session), user, **kwargs)


async def count_works(session: AsyncSession, orcid: str = OWNER_ORCID) -> int:
    return len(await service_for(session, None).find_works(orcid))


class TestIncomingPrivacy:

    @pytest.mark.asyncio
    async def test_client_work_on_claimed_record_gets_profile_default(self, async_session, sample_profile, sample_client):
        work = await service_for(async_session, member_user()).create_work(OWNER_ORCID, article(visibility="private"))
        assert work.visibility == "public"

    @pytest.mark.asyncio
    async def test_owner_keeps_requested_visibility(self, async_session, sample_profile):
        work = await service_for(async_session, owner_user()).create_work(OWNER_ORCID, article(visibility="limited"))
        assert work.visibility == "limited"

    @pytest.mark.asyncio
    async def test_owner_without_visibility_gets_default(self, async_session, sample_profile):
        work = await service_for(async_session, owner_user()).create_work(OWNER_ORCID, article())
        assert work.visibility == "public"

    @pytest.mark.asyncio
    async def test_unclaimed_record_without_visibility_is_private(self, async_session, unclaimed_profile):
        service = service_for(async_session, member_user(UNCLAIMED_ORCID))
        work = await service.create_work(UNCLAIMED_ORCID, article())
        assert work.visibility == "private"

    @pytest.mark.asyncio
    async def test_unclaimed_record_keeps_requested_visibility(self, async_session, unclaimed_profile):
        service = service_for(async_session, member_user(UNCLAIMED_ORCID))
        work = await service.create_work(UNCLAIMED_ORCID, article(visibility="limited"))
        assert work.visibility == "limited"

    def test_privacy_rule_matrix(self):
        profile = Profile(orcid=OWNER_ORCID, email="p@example.org", given_names="P", activities_visibility_default="limited")
        for is_api, incoming, expected in [
            (True, "private", "limited"),
            (True, None, "limited"),
            (False, None, "limited"),
            (False, "public", "public"),
        ]:
            work = Work(orcid=OWNER_ORCID, title="t", work_type="other")
            work.visibility = incoming
            WorkService.set_incoming_work_privacy(work, profile, is_api)
            assert work.visibility == expected

    def test_unclaimed_matrix(self):
        profile = Profile(orcid=UNCLAIMED_ORCID, email="u@example.org", given_names="U", claimed=False)
        work = Work(orcid=UNCLAIMED_ORCID, title="t", work_type="other")
        work.visibility = None
        WorkService.set_incoming_work_privacy(work, profile, True)
        assert work.visibility == "private"


class TestCreateWork:

    @pytest.mark.asyncio
    async def test_display_index_and_source(self, async_session, sample_profile, sample_client):
        api_work = await service_for(async_session, member_user()).create_work(OWNER_ORCID, article())
        ui_work = await service_for(async_session, owner_user()).create_work(OWNER_ORCID, article("Mine"))
        assert api_work.display_index == API_DISPLAY_INDEX
        assert api_work.client_source_id == CLIENT_ID and api_work.source_id is None
        assert ui_work.display_index == UI_DISPLAY_INDEX
        assert ui_work.source_id == OWNER_ORCID and ui_work.client_source_id is None

    @pytest.mark.asyncio
    async def test_same_client_duplicate_rejected(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        first = await service.create_work(OWNER_ORCID, article())
        first_put_code = first.id
        with pytest.raises(DuplicatedActivityException) as exc:
            await service.create_work(OWNER_ORCID, article("Again", doi("https://doi.org/10.1000/CRACKLE")))
        assert exc.value.detail["put_code"] == first_put_code
        assert exc.value.detail["client_name"] == "Test Member App"
        assert await count_works(async_session) == 1

    @pytest.mark.asyncio
    async def test_other_client_may_add_same_identifier(self, async_session, sample_profile, sample_client):
        await service_for(async_session, member_user()).create_work(OWNER_ORCID, article())
        await service_for(async_session, member_user(client_id=OTHER_CLIENT_ID)).create_work(OWNER_ORCID, article())
        assert await count_works(async_session) == 2

    @pytest.mark.asyncio
    async def test_part_of_identifier_is_not_duplicate(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        await service.create_work(OWNER_ORCID, article("Chapter 1", doi("10.1000/book", "part-of")))
        await service.create_work(OWNER_ORCID, article("Chapter 2", doi("10.1000/book", "part-of")))
        assert await count_works(async_session) == 2

    @pytest.mark.asyncio
    async def test_owner_is_not_checked_for_duplicates(self, async_session, sample_profile):
        service = service_for(async_session, owner_user())
        await service.create_work(OWNER_ORCID, article())
        await service.create_work(OWNER_ORCID, article())
        assert await count_works(async_session) == 2

    @pytest.mark.asyncio
    async def test_max_activities(self, async_session, sample_profile, sample_client, sample_work):
        service = service_for(async_session, member_user(), max_activities=1)
        with pytest.raises(ExceedMaxNumberOfElementsException):
            await service.create_work(OWNER_ORCID, article())

    @pytest.mark.asyncio
    async def test_api_rules(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        with pytest.raises(InvalidPutCodeException):
            await service.create_work(OWNER_ORCID, article(put_code=3))
        with pytest.raises(ActivityValidationException):
            await service.create_work(OWNER_ORCID, WorkForm(title="No ids", work_type="book"))
        assert await count_works(async_session) == 0

    @pytest.mark.asyncio
    async def test_client_create_sends_amend_notification(self, async_session, sample_profile, sample_client):
        uow = UnitOfWork(session=async_session)
        await WorkService(uow, member_user()).create_work(OWNER_ORCID, article())
        await WorkService(uow, owner_user()).create_work(OWNER_ORCID, article("Mine"))
        notifications = await NotificationService(uow).list_notifications(OWNER_ORCID)
        assert len(notifications) == 1
        assert notifications[0].source_client_id == CLIENT_ID
        assert notifications[0].items[0]["action_type"] == "CREATE"
        assert notifications[0].items[0]["item_name"] == "Crackle patterns"


class TestBulkCreate:

    @pytest.mark.asyncio
    async def test_elements_succeed_or_fail_independently(self, async_session, sample_profile, sample_client):
        forms = [
            article("First", doi("10.1000/a")),
            article("Duplicate of first", doi("10.1000/A")),
            WorkForm(title="Bad type", work_type="blog", external_ids=[doi("10.1000/c")]),
            article("Second", doi("10.1000/b")),
        ]
        results = await service_for(async_session, member_user()).create_works(OWNER_ORCID, forms)
        assert len(results) == 4
        assert results[0]["title"] == "First"
        assert results[1]["error"]["code"] == 409
        assert results[1]["error"]["detail"]["put_code"] == results[0]["put_code"]
        assert results[2]["error"]["code"] == 422
        assert results[3]["title"] == "Second"
        assert await count_works(async_session) == 2

        notifications = await NotificationService(UnitOfWork(session=async_session)).list_notifications(OWNER_ORCID)
        assert len(notifications) == 1
        assert [item["item_name"] for item in notifications[0].items] == ["First", "Second"]

    @pytest.mark.asyncio
    async def test_database_error_fails_only_its_element(self, async_session, sample_profile, sample_client, monkeypatch):
        service = service_for(async_session, member_user())
        real_flush = service.uow.flush

        async def flush():
            if any(getattr(obj, "title", None) == "Overlong" for obj in async_session.new):
                raise DataError("INSERT INTO works", {}, Exception("Data too long for column 'title'"))
            await real_flush()

        monkeypatch.setattr(service.uow, "flush", flush)
        forms = [article("First", doi("10.1000/a")), article("Overlong", doi("10.1000/b")), article("Third", doi("10.1000/c"))]
        results = await service.create_works(OWNER_ORCID, forms)

        assert results[0]["title"] == "First"
        assert results[1]["error"]["code"] == 500
        assert results[1]["error"]["type"] == "DatabaseError"
        assert results[2]["title"] == "Third"
        titles = {w.title for w in await service.find_works(OWNER_ORCID)}
        assert titles == {"First", "Third"}

    @pytest.mark.asyncio
    async def test_existing_works_count_as_duplicates(self, async_session, sample_profile, sample_client):
        await add_work(async_session, "Existing", [ext("doi", "10.1000/a")], client_id=CLIENT_ID)
        results = await service_for(async_session, member_user()).create_works(OWNER_ORCID, [article("Again", doi("10.1000/a"))])
        assert results[0]["error"]["type"] == "DuplicatedActivityException"

    @pytest.mark.asyncio
    async def test_part_of_identifiers_repeat_within_bulk(self, async_session, sample_profile, sample_client):
        forms = [article("Ch 1", doi("10.1000/book", "part-of")), article("Ch 2", doi("10.1000/book", "part-of"))]
        results = await service_for(async_session, member_user()).create_works(OWNER_ORCID, forms)
        assert all("error" not in r for r in results)

    @pytest.mark.asyncio
    async def test_bulk_limit(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user(), bulk_write_max=2)
        forms = [article(f"W{i}", doi(f"10.1000/{i}")) for i in range(3)]
        with pytest.raises(TooManyElementsInBulkException):
            await service.create_works(OWNER_ORCID, forms)

    @pytest.mark.asyncio
    async def test_empty_bulk(self, async_session, sample_profile, sample_client):
        assert await service_for(async_session, member_user()).create_works(OWNER_ORCID, []) == []


class TestUpdateWork:

    @pytest.mark.asyncio
    async def test_source_updates_content_and_keeps_visibility(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        work = await service.create_work(OWNER_ORCID, article())
        updated = await service.update_work(OWNER_ORCID, work.id, article("Crackle patterns, revised"))
        assert updated.title == "Crackle patterns, revised"
        assert updated.visibility == "public"

    @pytest.mark.asyncio
    async def test_client_cannot_change_visibility(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        put_code = (await service.create_work(OWNER_ORCID, article())).id
        with pytest.raises(VisibilityMismatchException):
            await service.update_work(OWNER_ORCID, put_code, article(visibility="private"))

    @pytest.mark.asyncio
    async def test_other_source_cannot_update(self, async_session, sample_profile, sample_client):
        put_code = (await service_for(async_session, member_user()).create_work(OWNER_ORCID, article())).id
        other = service_for(async_session, member_user(client_id=OTHER_CLIENT_ID))
        with pytest.raises(WrongSourceException):
            await other.update_work(OWNER_ORCID, put_code, article("Hijacked"))
        with pytest.raises(WrongSourceException):
            await service_for(async_session, owner_user()).update_work(OWNER_ORCID, put_code, article("Mine now"))

    @pytest.mark.asyncio
    async def test_owner_may_change_visibility(self, async_session, sample_profile, sample_work):
        put_code = sample_work.id
        updated = await service_for(async_session, owner_user()).update_work(
            OWNER_ORCID, put_code, article("Ceramic pots", visibility="private")
        )
        assert updated.visibility == "private"

    @pytest.mark.asyncio
    async def test_update_into_duplicate_rejected(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        await service.create_work(OWNER_ORCID, article("A", doi("10.1000/a")))
        put_code = (await service.create_work(OWNER_ORCID, article("B", doi("10.1000/b")))).id
        with pytest.raises(DuplicatedActivityException):
            await service.update_work(OWNER_ORCID, put_code, article("B", doi("10.1000/a")))

    @pytest.mark.asyncio
    async def test_missing_work(self, async_session, sample_profile):
        with pytest.raises(WorkNotFoundException):
            await service_for(async_session, owner_user()).update_work(OWNER_ORCID, 999, article())


class TestRemoveWork:

    @pytest.mark.asyncio
    async def test_source_removes_work(self, async_session, sample_profile, sample_client):
        service = service_for(async_session, member_user())
        put_code = (await service.create_work(OWNER_ORCID, article())).id
        assert await service.check_source_and_remove_work(OWNER_ORCID, put_code) is True
        assert await count_works(async_session) == 0
        notifications = await NotificationService(UnitOfWork(session=async_session)).list_notifications(OWNER_ORCID)
        assert notifications[0].items[0]["action_type"] == "DELETE"

    @pytest.mark.asyncio
    async def test_other_source_cannot_remove(self, async_session, sample_profile, sample_client):
        put_code = (await service_for(async_session, member_user()).create_work(OWNER_ORCID, article())).id
        with pytest.raises(WrongSourceException):
            await service_for(async_session, owner_user()).check_source_and_remove_work(OWNER_ORCID, put_code)
        assert await count_works(async_session) == 1

    @pytest.mark.asyncio
    async def test_database_failure_returns_false(self, async_session, sample_profile, sample_client, monkeypatch):
        service = service_for(async_session, member_user())
        put_code = (await service.create_work(OWNER_ORCID, article())).id

        async def failing_delete(entity):
            raise OperationalError("DELETE FROM works", {}, Exception("lock wait timeout"))

        monkeypatch.setattr(service.repo, "delete_entity", failing_delete)
        assert await service.check_source_and_remove_work(OWNER_ORCID, put_code) is False
        assert (await service.get_work(OWNER_ORCID, put_code)).id == put_code
        assert await count_works(async_session) == 1

    @pytest.mark.asyncio
    async def test_owner_bulk_remove_and_remove_all(self, async_session, sample_profile):
        first = await add_work(async_session, "One", [ext("doi", "10.1000/1")], client_id=CLIENT_ID)
        await add_work(async_session, "Two", [ext("doi", "10.1000/2")])
        await add_work(async_session, "Three", [ext("doi", "10.1000/3")])
        service = service_for(async_session, owner_user())
        assert await service.remove_works(OWNER_ORCID, [first.id, 12345]) is True
        assert await service.remove_works(OWNER_ORCID, [12345]) is False
        assert await service.remove_all_works(OWNER_ORCID) == 2
        assert await count_works(async_session) == 0


class TestVisibilityAndDisplay:

    @pytest.mark.asyncio
    async def test_update_visibilities(self, async_session, sample_profile, sample_work):
        put_code = sample_work.id
        service = service_for(async_session, owner_user())
        assert await service.update_visibilities(OWNER_ORCID, [put_code], "Limited") is True
        assert (await service.get_work(OWNER_ORCID, put_code)).visibility == "limited"
        assert await service.update_visibilities(OWNER_ORCID, [424242], "public") is False

    @pytest.mark.asyncio
    async def test_update_to_max_display(self, async_session, sample_profile):
        low = await add_work(async_session, "Low", [ext("doi", "10.1000/a")], client_id=CLIENT_ID, display_index=0)
        await add_work(async_session, "High", [ext("doi", "10.1000/a")], display_index=4)
        service = service_for(async_session, owner_user())
        assert await service.update_to_max_display(OWNER_ORCID, low.id) is True
        groups = await service.get_grouped_works(OWNER_ORCID, owner_user())
        assert groups[0]["preferred_put_code"] == low.id
        assert await service.update_to_max_display(OWNER_ORCID, 999) is False


class TestGroupWorks:

    @pytest.mark.asyncio
    async def test_group_without_user_version_creates_owner_copy(self, async_session, sample_profile):
        a = await add_work(async_session, "Client A", [ext("doi", "10.1000/a")], client_id=CLIENT_ID, display_index=3)
        b = await add_work(async_session, "Client B", [ext("pmid", "555")], client_id=OTHER_CLIENT_ID)
        service = service_for(async_session, owner_user())
        affected = await service.create_new_work_group([a.id, b.id], OWNER_ORCID)

        assert len(affected) == 1
        copy = affected[0]
        assert copy.id not in (a.id, b.id)
        assert copy.title == "Client A"
        assert copy.source_id == OWNER_ORCID and copy.client_source_id is None
        assert copy.display_index == 2
        assert {e["type"] for e in copy.external_ids} == {"doi", "pmid"}

        groups = await service.get_grouped_works(OWNER_ORCID, owner_user())
        assert len(groups) == 1
        assert len(groups[0]["works"]) == 3

    @pytest.mark.asyncio
    async def test_group_updates_existing_user_version(self, async_session, sample_profile, sample_work):
        owner_put_code = sample_work.id
        client_work = await add_work(async_session, "Client copy", [ext("pmid", "777")], client_id=CLIENT_ID)
        service = service_for(async_session, owner_user())
        affected = await service.create_new_work_group([owner_put_code, client_work.id], OWNER_ORCID)
        assert [w.id for w in affected] == [owner_put_code]
        assert {e["type"] for e in affected[0].external_ids} == {"doi", "pmid"}
        assert len(await service.find_works(OWNER_ORCID)) == 2

    @pytest.mark.asyncio
    async def test_group_needs_groupable_identifier(self, async_session, sample_profile):
        a = await add_work(async_session, "A", [ext("issn", "1234-5679")], client_id=CLIENT_ID)
        b = await add_work(async_session, "B", [ext("doi", "10.1000/x", "part-of")], client_id=CLIENT_ID)
        with pytest.raises(MissingGroupableExternalIDException):
            await service_for(async_session, owner_user()).create_new_work_group([a.id, b.id], OWNER_ORCID)


class TestReads:

    @pytest.mark.asyncio
    async def test_grouped_works_filtered_by_viewer(self, async_session, sample_profile):
        await add_work(async_session, "Public", [ext("doi", "10.1000/1")])
        await add_work(async_session, "Limited", [ext("doi", "10.1000/2")], visibility="limited")
        await add_work(async_session, "Private", [ext("doi", "10.1000/3")], visibility="private")
        await add_work(async_session, "Client private", [ext("doi", "10.1000/4")], visibility="private", client_id=CLIENT_ID)
        service = service_for(async_session, None)

        def titles(groups):
            return sorted(w["title"] for g in groups for w in g["works"])

        assert titles(await service.get_grouped_works(OWNER_ORCID, None)) == ["Public"]
        assert titles(await service.get_grouped_works(OWNER_ORCID, member_user())) == ["Client private", "Limited", "Public"]
        assert titles(await service.get_grouped_works(OWNER_ORCID, member_user(client_id=OTHER_CLIENT_ID))) == ["Limited", "Public"]
        write_only = member_user(scopes=["/activities/update"])
        assert titles(await service.get_grouped_works(OWNER_ORCID, write_only)) == ["Public"]
        assert len(titles(await service.get_grouped_works(OWNER_ORCID, owner_user()))) == 4

    @pytest.mark.asyncio
    async def test_hidden_work_reads_as_missing(self, async_session, sample_profile):
        hidden = await add_work(async_session, "Private", [ext("doi", "10.1000/3")], visibility="private")
        service = service_for(async_session, None)
        with pytest.raises(WorkNotFoundException):
            await service.get_visible_work(OWNER_ORCID, hidden.id, None)
        assert (await service.get_visible_work(OWNER_ORCID, hidden.id, owner_user())).title == "Private"

    @pytest.mark.asyncio
    async def test_bulk_read_keeps_positions(self, async_session, sample_profile, sample_work):
        hidden = await add_work(async_session, "Private", [ext("doi", "10.1000/3")], visibility="private")
        results = await service_for(async_session, None).get_works(OWNER_ORCID, [sample_work.id, 999, hidden.id])
        assert results[0]["put_code"] == sample_work.id
        assert results[1]["error"]["code"] == 404
        assert results[2]["error"]["code"] == 404

    @pytest.mark.asyncio
    async def test_bulk_read_limit(self, async_session, sample_profile):
        with pytest.raises(TooManyElementsInBulkException):
            await service_for(async_session, None, bulk_read_max=2).get_works(OWNER_ORCID, [1, 2, 3])

    @pytest.mark.asyncio
    async def test_work_extended_groups_contributors(self, async_session, sample_profile):
        work = await add_work(async_session, "Co-authored", [ext("doi", "10.1000/co")])
        work.contributors = [
            {"contributor_orcid": OWNER_ORCID, "credit_name": "J. Carberry", "role": "author", "sequence": "first"},
            {"contributor_orcid": OWNER_ORCID, "credit_name": None, "role": "editor", "sequence": "additional"},
            {"contributor_orcid": None, "credit_name": "A. Potter", "role": "author", "sequence": "additional"},
        ]
        async_session.add(work)
        await async_session.commit()
        extended = await service_for(async_session, None).get_work_extended(OWNER_ORCID, work.id)
        grouped = extended["contributors_grouped_by_orcid"]
        assert len(grouped) == 2
        assert grouped[0]["credit_name"] == "J. Carberry"
        assert [r["role"] for r in grouped[0]["roles_and_sequences"]] == ["author", "editor"]

    @pytest.mark.asyncio
    async def test_invalid_sort_key(self, async_session, sample_profile):
        with pytest.raises(BusinessException) as exc:
            await service_for(async_session, None).get_grouped_works(OWNER_ORCID, None, sort="size")
        assert exc.value.code == 400
