import asyncio
import logging
import uuid
from datetime import datetime, timezone

import pytest

from app.core.exceptions import (
    AlreadyConfirmedError,
    DuplicateParticipantError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.schemas.trip.trip_schema import TripCreate
from app.services.trips.trip_service import TripService
from tests.fakes import FakeMailer


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestCreateTrip:
    @pytest.mark.asyncio
    async def test_created_trip_is_unconfirmed_with_owner_and_invitees(self, trip_service, trip_payload):
        trip_payload["emails_to_invite"] = ["bob@x.com", "carol@x.com"]

        trip_id = await trip_service.create_trip(trip_payload)

        trip = await trip_service.get_trip(trip_id)
        assert trip.destination == "Paris"
        assert trip.is_confirmed is False
        participants = await trip_service.list_participants(trip_id)
        assert sorted(p.email for p in participants) == ["ana@example.com", "bob@x.com", "carol@x.com"]
        assert all(p.is_confirmed is False for p in participants)
        assert [p.email for p in participants if p.is_owner] == ["ana@example.com"]

    @pytest.mark.asyncio
    async def test_owner_only_trip(self, trip_service, trip_payload):
        trip_payload["owner_email"] = "bob@x.com"
        trip_payload["emails_to_invite"] = []

        trip_id = await trip_service.create_trip(TripCreate(**trip_payload))

        assert (await trip_service.get_trip(trip_id)).is_confirmed is False
        participants = await trip_service.list_participants(trip_id)
        assert len(participants) == 1
        assert participants[0].email == "bob@x.com"
        assert participants[0].is_confirmed is False

    @pytest.mark.asyncio
    async def test_sends_confirmation_email_to_owner(self, trip_service, mailer, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        await trip_service.drain()

        assert mailer.confirmation_emails == [trip_id]
        assert mailer.invitation_emails == []

    @pytest.mark.asyncio
    async def test_returns_before_email_is_sent(self, trip_service, mailer, trip_payload):
        mailer.release.clear()

        trip_id = await trip_service.create_trip(trip_payload)

        assert mailer.confirmation_emails == []
        mailer.release.set()
        await trip_service.drain()
        assert mailer.confirmation_emails == [trip_id]

    @pytest.mark.asyncio
    async def test_mail_failure_is_logged_not_raised(self, store, trip_payload, caplog):
        service = TripService(store, FakeMailer(fail=True))

        with caplog.at_level(logging.ERROR, logger="tripplanner"):
            trip_id = await service.create_trip(trip_payload)
            await service.drain()

        assert trip_id in store.trips
        assert "trip confirmation email" in caplog.text
        assert str(trip_id) in caplog.text

    @pytest.mark.asyncio
    async def test_duplicate_emails_create_nothing(self, trip_service, store, trip_payload):
        trip_payload["emails_to_invite"] = ["bob@x.com", "bob@x.com"]

        with pytest.raises(PersistenceError):
            await trip_service.create_trip(trip_payload)

        assert store.trips == {}
        assert store.participants == {}

    @pytest.mark.asyncio
    async def test_malformed_payload(self, trip_service, trip_payload):
        trip_payload["owner_email"] = "not-an-email"

        with pytest.raises(ValidationError):
            await trip_service.create_trip(trip_payload)

    @pytest.mark.asyncio
    async def test_empty_destination(self, trip_service, trip_payload):
        trip_payload["destination"] = ""

        with pytest.raises(ValidationError):
            await trip_service.create_trip(trip_payload)


class TestGetAndUpdateTrip:
    @pytest.mark.asyncio
    async def test_get_unknown_trip(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.get_trip(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_malformed_id(self, trip_service):
        with pytest.raises(ValidationError):
            await trip_service.get_trip("not-a-uuid")

    @pytest.mark.asyncio
    async def test_update_overwrites_fields(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        await trip_service.update_trip(
            str(trip_id),
            {"destination": "Rome", "starts_at": _utc(2025, 7, 1), "ends_at": _utc(2025, 7, 3)},
        )

        trip = await trip_service.get_trip(trip_id)
        assert trip.destination == "Rome"
        assert trip.starts_at == _utc(2025, 7, 1)
        assert trip.ends_at == _utc(2025, 7, 3)
        assert trip.is_confirmed is False

    @pytest.mark.asyncio
    async def test_update_keeps_confirmation(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        await trip_service.confirm_trip(trip_id)

        await trip_service.update_trip(
            trip_id,
            {"destination": "Lisbon", "starts_at": _utc(2025, 8, 1), "ends_at": _utc(2025, 8, 5)},
        )

        trip = await trip_service.get_trip(trip_id)
        assert trip.destination == "Lisbon"
        assert trip.is_confirmed is True

    @pytest.mark.asyncio
    async def test_update_unknown_trip(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.update_trip(
                uuid.uuid4(),
                {"destination": "Rome", "starts_at": _utc(2025, 7, 1), "ends_at": _utc(2025, 7, 3)},
            )

    @pytest.mark.asyncio
    async def test_unclassified_store_failure(self, trip_service, store, caplog):
        async def broken(trip_id):
            raise RuntimeError("connection reset")

        store.get_trip = broken

        with caplog.at_level(logging.ERROR, logger="tripplanner"):
            with pytest.raises(PersistenceError) as exc_info:
                await trip_service.get_trip(uuid.uuid4())

        assert exc_info.value.message == "something went wrong, try again later"
        assert "connection reset" in caplog.text


class TestConfirmTrip:
    @pytest.mark.asyncio
    async def test_confirm_twice(self, trip_service, mailer, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        await trip_service.confirm_trip(trip_id)
        with pytest.raises(AlreadyConfirmedError):
            await trip_service.confirm_trip(trip_id)

        trip = await trip_service.get_trip(trip_id)
        assert trip.is_confirmed is True
        assert trip.destination == "Paris"
        await trip_service.drain()
        assert mailer.invitation_emails == []

    @pytest.mark.asyncio
    async def test_confirm_unknown_trip(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.confirm_trip(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_concurrent_confirmations_succeed_once(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        results = await asyncio.gather(
            *[trip_service.confirm_trip(trip_id) for _ in range(3)],
            return_exceptions=True,
        )

        assert results.count(None) == 1
        assert len([r for r in results if isinstance(r, AlreadyConfirmedError)]) == 2

    @pytest.mark.asyncio
    async def test_unknown_trip_logs_warning(self, trip_service, caplog):
        trip_id = uuid.uuid4()

        with caplog.at_level(logging.WARNING, logger="tripplanner"):
            with pytest.raises(NotFoundError):
                await trip_service.confirm_trip(trip_id)

        assert f"trip_id={trip_id}" in caplog.text
        assert "trip not found" in caplog.text


class TestConfirmParticipant:
    @pytest.mark.asyncio
    async def test_confirm_twice(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        bob = next(p for p in await trip_service.list_participants(trip_id) if p.email == "bob@x.com")

        await trip_service.confirm_participant(str(bob.id))
        with pytest.raises(AlreadyConfirmedError):
            await trip_service.confirm_participant(str(bob.id))

        bob = next(p for p in await trip_service.list_participants(trip_id) if p.email == "bob@x.com")
        assert bob.is_confirmed is True

    @pytest.mark.asyncio
    async def test_confirm_unknown_participant(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.confirm_participant(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_confirm_malformed_id(self, trip_service):
        with pytest.raises(ValidationError):
            await trip_service.confirm_participant("123")

    @pytest.mark.asyncio
    async def test_concurrent_confirmations_succeed_once(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        bob = next(p for p in await trip_service.list_participants(trip_id) if p.email == "bob@x.com")

        results = await asyncio.gather(
            *[trip_service.confirm_participant(bob.id) for _ in range(3)],
            return_exceptions=True,
        )

        assert results.count(None) == 1
        assert len([r for r in results if isinstance(r, AlreadyConfirmedError)]) == 2


class TestInviteParticipant:
    @pytest.mark.asyncio
    async def test_invite_then_duplicate(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        participant_id = await trip_service.invite_participant(trip_id, {"email": "carol@x.com"})
        with pytest.raises(DuplicateParticipantError):
            await trip_service.invite_participant(trip_id, {"email": "carol@x.com"})

        emails = [p.email for p in await trip_service.list_participants(trip_id)]
        assert emails.count("carol@x.com") == 1
        assert participant_id in {p.id for p in await trip_service.list_participants(trip_id)}

    @pytest.mark.asyncio
    async def test_invite_initial_invitee_again(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        with pytest.raises(DuplicateParticipantError):
            await trip_service.invite_participant(trip_id, {"email": "bob@x.com"})

    @pytest.mark.asyncio
    async def test_concurrent_identical_invites(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        results = await asyncio.gather(
            *[trip_service.invite_participant(trip_id, {"email": "dan@x.com"}) for _ in range(5)],
            return_exceptions=True,
        )

        successes = [r for r in results if isinstance(r, uuid.UUID)]
        assert len(successes) == 1
        assert all(isinstance(r, DuplicateParticipantError) for r in results if r not in successes)

    @pytest.mark.asyncio
    async def test_invite_sends_invitation_email(self, trip_service, mailer, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)

        participant_id = await trip_service.invite_participant(trip_id, {"email": "carol@x.com"})
        await trip_service.drain()

        assert mailer.invitation_emails == [(trip_id, participant_id)]

    @pytest.mark.asyncio
    async def test_invite_to_unknown_trip(self, trip_service, mailer):
        with pytest.raises(NotFoundError):
            await trip_service.invite_participant(uuid.uuid4(), {"email": "carol@x.com"})

        await trip_service.drain()
        assert mailer.invitation_emails == []

    @pytest.mark.asyncio
    async def test_invite_survives_mail_failure(self, store, trip_payload):
        service = TripService(store, FakeMailer(fail=True))
        trip_id = await service.create_trip(trip_payload)

        participant_id = await service.invite_participant(trip_id, {"email": "carol@x.com"})
        await service.drain()

        assert participant_id in store.participants


class TestParticipantsActivitiesLinks:
    @pytest.mark.asyncio
    async def test_participant_names_are_derived(self, trip_service, store, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        # Rows written before email validation existed
        await store.invite_participant(trip_id, "legacy-entry")

        names = {p.email: p.name for p in await trip_service.list_participants(trip_id)}

        assert names == {"ana@example.com": "ana", "bob@x.com": "bob", "legacy-entry": None}

    @pytest.mark.asyncio
    async def test_list_participants_unknown_trip(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.list_participants(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_activities_grouped_by_ascending_date(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        second = await trip_service.create_activity(trip_id, {"title": "Louvre", "occurs_at": _utc(2025, 1, 2, 10)})
        first = await trip_service.create_activity(trip_id, {"title": "Arrival", "occurs_at": _utc(2025, 1, 1, 18)})
        third = await trip_service.create_activity(trip_id, {"title": "Dinner", "occurs_at": _utc(2025, 1, 2, 8)})

        groups = await trip_service.group_activities_by_date(trip_id)

        assert [g.date.isoformat() for g in groups] == ["2025-01-01", "2025-01-02"]
        assert [a.id for a in groups[0].activities] == [first]
        assert [a.id for a in groups[1].activities] == [second, third]

    @pytest.mark.asyncio
    async def test_activity_on_unknown_trip(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.create_activity(uuid.uuid4(), {"title": "Louvre", "occurs_at": _utc(2025, 1, 2)})

    @pytest.mark.asyncio
    async def test_links(self, trip_service, trip_payload):
        trip_id = await trip_service.create_trip(trip_payload)
        link_id = await trip_service.create_link(trip_id, {"title": "Airbnb", "url": "https://airbnb.com/rooms/1"})

        links = await trip_service.list_links(trip_id)

        assert [(link.id, link.title, link.url) for link in links] == [
            (link_id, "Airbnb", "https://airbnb.com/rooms/1")
        ]

    @pytest.mark.asyncio
    async def test_link_on_unknown_trip(self, trip_service):
        with pytest.raises(NotFoundError):
            await trip_service.create_link(uuid.uuid4(), {"title": "Airbnb", "url": "https://airbnb.com"})
