"""
Unit Tests for the Volunteer Matching Workflow
"""
import pytest

from hivecommunity.core.config import Settings
from hivecommunity.core.exceptions import (
    DuplicateApplicationError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from hivecommunity.services.document_store import Collections, StoreTransaction
from hivecommunity.services.volunteer_service import VolunteerService, notification_address


@pytest.fixture
def volunteer_service(store, lifecycle):
    return VolunteerService(store, lifecycle)


@pytest.fixture
async def opportunity(volunteer_service):
    return await volunteer_service.create_opportunity(
        {"title": "Registration Desk", "description": "Check in attendees", "maxVolunteers": "2"},
        admin_id="admin",
    )


def applicant(email="a@x.com", name="Asha", **extra):
    return {"memberEmail": email, "memberName": name, **extra}


async def add_members(store, *members):
    for member in members:
        await store.add(Collections.MEMBERS_APPROVED, member)


class TestOpportunities:
    @pytest.mark.asyncio
    async def test_create_coerces_and_defaults(self, opportunity):
        assert opportunity["maxVolunteers"] == 2
        assert opportunity["isActive"] is True
        assert opportunity["createdBy"] == "admin"

    @pytest.mark.asyncio
    async def test_title_required(self, volunteer_service):
        with pytest.raises(ValidationError):
            await volunteer_service.create_opportunity({"title": "  "}, admin_id="admin")

    @pytest.mark.asyncio
    async def test_event_must_exist(self, volunteer_service):
        with pytest.raises(NotFoundError):
            await volunteer_service.create_opportunity({"title": "Stage crew", "eventId": "missing"}, "admin")

    @pytest.mark.asyncio
    async def test_list_open_annotates_counts(self, volunteer_service, store, opportunity):
        event_id = await store.add(Collections.EVENTS, {"eventName": "Hack Night"})
        await volunteer_service.create_opportunity({"title": "Stage crew", "eventId": event_id}, "admin")
        closed = await volunteer_service.create_opportunity({"title": "Closed", "isActive": False}, "admin")
        application_id = await volunteer_service.apply(opportunity["id"], applicant())
        await volunteer_service.review_application(application_id, "approved", "admin")

        listed = {o["title"]: o for o in await volunteer_service.list_open()}

        assert set(listed) == {"Registration Desk", "Stage crew"}
        assert listed["Registration Desk"]["currentApplications"] == 1
        assert listed["Registration Desk"]["spotsRemaining"] == 1
        assert listed["Stage crew"]["event"]["eventName"] == "Hack Night"
        assert closed["isActive"] is False

    @pytest.mark.asyncio
    async def test_set_active(self, volunteer_service, opportunity):
        updated = await volunteer_service.set_active(opportunity["id"], False)

        assert updated["isActive"] is False
        assert await volunteer_service.list_open() == []


class TestApply:
    @pytest.mark.asyncio
    async def test_apply_defaults_optional_fields(self, volunteer_service, store, opportunity):
        application_id = await volunteer_service.apply(opportunity["id"], applicant(email="A@X.com"))

        record = await store.get(Collections.VOLUNTEER_APPLICATIONS, application_id)
        assert record["status"] == "pending"
        assert record["memberEmail"] == "a@x.com"
        assert record["volunteerId"] == opportunity["id"]
        assert record["skills"] == []
        assert record["hiveName"] is None
        assert "appliedAt" in record

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, volunteer_service, store, opportunity):
        await volunteer_service.apply(opportunity["id"], applicant())

        with pytest.raises(DuplicateApplicationError):
            await volunteer_service.apply(opportunity["id"], applicant(email=" a@X.COM "))

        assert await store.count(Collections.VOLUNTEER_APPLICATIONS) == 1

    @pytest.mark.asyncio
    async def test_unknown_opportunity(self, volunteer_service):
        with pytest.raises(NotFoundError):
            await volunteer_service.apply("missing", applicant())

    @pytest.mark.asyncio
    async def test_closed_opportunity(self, volunteer_service, opportunity):
        await volunteer_service.set_active(opportunity["id"], False)

        with pytest.raises(ValidationError):
            await volunteer_service.apply(opportunity["id"], applicant())

    @pytest.mark.asyncio
    async def test_full_opportunity(self, volunteer_service, opportunity):
        for email in ("one@x.com", "two@x.com"):
            application_id = await volunteer_service.apply(opportunity["id"], applicant(email=email))
            await volunteer_service.review_application(application_id, "approved", "admin")

        with pytest.raises(ValidationError) as exc_info:
            await volunteer_service.apply(opportunity["id"], applicant(email="three@x.com"))

        assert exc_info.value.message == "This volunteer opportunity is full"

    @pytest.mark.asyncio
    async def test_zero_max_means_unlimited(self, volunteer_service):
        opportunity = await volunteer_service.create_opportunity({"title": "Any", "maxVolunteers": ""}, "admin")

        for index in range(3):
            application_id = await volunteer_service.apply(opportunity["id"], applicant(email=f"m{index}@x.com"))
            await volunteer_service.review_application(application_id, "approved", "admin")

        assert await volunteer_service.apply(opportunity["id"], applicant(email="late@x.com"))

        listed = (await volunteer_service.list_open())[0]
        assert listed["currentApplications"] == 3
        assert listed["spotsRemaining"] is None

    @pytest.mark.asyncio
    async def test_missing_member_name(self, volunteer_service, opportunity):
        with pytest.raises(ValidationError):
            await volunteer_service.apply(opportunity["id"], {"memberEmail": "a@x.com"})


class TestReview:
    @pytest.mark.asyncio
    async def test_member_sees_decision(self, volunteer_service, opportunity):
        application_id = await volunteer_service.apply(opportunity["id"], applicant())

        await volunteer_service.review_application(application_id, "rejected", "admin", note="Roles filled")

        mine = await volunteer_service.member_applications("A@x.com")
        assert len(mine) == 1
        assert mine[0]["status"] == "rejected"
        assert mine[0]["adminNote"] == "Roles filled"
        assert mine[0]["opportunity"]["title"] == "Registration Desk"

    @pytest.mark.asyncio
    async def test_invalid_review_status(self, volunteer_service, opportunity):
        application_id = await volunteer_service.apply(opportunity["id"], applicant())

        with pytest.raises(ValidationError):
            await volunteer_service.review_application(application_id, "pending", "admin")

    @pytest.mark.asyncio
    async def test_admin_listing_filters_by_opportunity(self, volunteer_service, opportunity):
        other = await volunteer_service.create_opportunity({"title": "Other"}, "admin")
        await volunteer_service.apply(opportunity["id"], applicant())
        await volunteer_service.apply(other["id"], applicant())

        assert len(await volunteer_service.applications_for_admin()) == 2
        assert len(await volunteer_service.applications_for_admin(opportunity["id"])) == 1

    @pytest.mark.asyncio
    async def test_statistics(self, volunteer_service, opportunity):
        application_id = await volunteer_service.apply(opportunity["id"], applicant())
        await volunteer_service.apply(opportunity["id"], applicant(email="b@x.com"))
        await volunteer_service.review_application(application_id, "approved", "admin")

        stats = await volunteer_service.statistics()

        assert stats["totalOpportunities"] == 1
        assert stats["activeOpportunities"] == 1
        assert stats["approvedApplications"] == 1
        assert stats["pendingApplications"] == 1


class TestNotifications:
    def test_notification_address_falls_back_to_login(self):
        assert notification_address({"email": "a@x.com"}) == "a@x.com"
        assert notification_address({"credentials": {"email": "asha.alpha.1@members.x"}}) == "asha.alpha.1@members.x"
        assert notification_address({}) is None

    @pytest.mark.asyncio
    async def test_create_notifies_every_approved_member(self, store, lifecycle):
        service = VolunteerService(store, lifecycle, config=Settings(NOTIFICATION_BATCH_SIZE=2))
        await add_members(
            store,
            *[{"name": f"Member {i}", "email": f"m{i}@x.com"} for i in range(5)],
            {"name": "No Email"},
        )

        opportunity = await service.create_opportunity({"title": "Stage crew"}, "admin")

        notifications = await store.query(Collections.VOLUNTEER_NOTIFICATIONS)
        assert len(notifications) == 5
        assert all(n["opportunityId"] == opportunity["id"] for n in notifications)
        assert all(n["isRead"] is False for n in notifications)

    @pytest.mark.asyncio
    async def test_failing_batch_does_not_stop_the_rest(self, store, lifecycle, monkeypatch):
        service = VolunteerService(store, lifecycle, config=Settings(NOTIFICATION_BATCH_SIZE=2))
        await add_members(store, *[{"name": f"Member {i}", "email": f"m{i}@x.com"} for i in range(4)])
        await add_members(store, {"name": "Bad", "email": "bad@x.com"})

        original_add = StoreTransaction.add

        async def flaky_add(self, collection, data, record_id=None):
            if data.get("memberName") == "Member 2":
                raise ServiceError(operation="add")
            return await original_add(self, collection, data, record_id)

        monkeypatch.setattr(StoreTransaction, "add", flaky_add)

        result = await service.fan_out_notifications({"id": "opp-1", "title": "Stage crew"})

        assert result.created == 3
        assert result.failed == 2
        assert result.skipped == 0
        monkeypatch.undo()
        assert await store.count(Collections.VOLUNTEER_NOTIFICATIONS) == 3

    @pytest.mark.asyncio
    async def test_unread_newest_first_and_mark_read(self, volunteer_service, store):
        await add_members(store, {"name": "Asha", "email": "a@x.com"})
        await volunteer_service.create_opportunity({"title": "First"}, "admin")
        await volunteer_service.create_opportunity({"title": "Second"}, "admin")

        unread = await volunteer_service.notifications("A@X.COM")
        assert [n["opportunityTitle"] for n in unread] == ["Second", "First"]

        assert await volunteer_service.mark_read(unread[0]["id"]) is True
        assert [n["opportunityTitle"] for n in await volunteer_service.notifications("a@x.com")] == ["First"]

    @pytest.mark.asyncio
    async def test_mark_read_missing_returns_false(self, volunteer_service):
        assert await volunteer_service.mark_read("missing") is False
