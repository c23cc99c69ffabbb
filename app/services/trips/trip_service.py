import asyncio
from typing import Any, Awaitable, List, Set, Type, TypeVar, Union
from uuid import UUID

import pydantic

from app.core.exceptions import (
    AlreadyConfirmedError,
    NotFoundError,
    PersistenceError,
    TripPlannerError,
    ValidationError,
)
from app.core.logger import logger
from app.schemas.itineraries.activity import ActivitiesOnDate, ActivityCreate
from app.schemas.trip.invite import InviteCreate, ParticipantResponse
from app.schemas.trip.link import LinkCreate, LinkResponse
from app.schemas.trip.trip_schema import TripCreate, TripResponse, TripUpdate
from app.services.trips.email_invite import Notifier
from app.services.trips.store import TripStore
from app.utils.grouping import group_activities_by_date
from app.utils.normalize import participant_name

T = TypeVar("T")
M = TypeVar("M", bound=pydantic.BaseModel)
Identifier = Union[str, UUID]


def parse_id(value: Identifier) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError("invalid uuid") from None


def validate_payload(schema: Type[M], data: Any) -> M:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"invalid input: {e}") from None


def _context(**ids) -> str:
    return " ".join(f"{key}={value}" for key, value in ids.items())


class TripService:
    """
    Trip lifecycle: creation, invitations and confirmations.

    Reads the current state from the store, checks the requested transition,
    writes through the store and then hands emails off to the notifier without
    waiting for them. A failed email is logged and dropped; it never undoes or
    fails the transition that triggered it.
    """

    def __init__(self, store: TripStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier
        self._pending: Set[asyncio.Task] = set()

    async def _store_call(self, action: str, awaitable: Awaitable[T], **ids) -> T:
        try:
            return await awaitable
        except PersistenceError as e:
            logger.error(f"Failed to {action} ({_context(**ids)}): {e.__cause__ or e}")
            raise
        except (NotFoundError, AlreadyConfirmedError) as e:
            logger.warning(f"Could not {action} ({_context(**ids)}): {e.message}")
            raise
        except TripPlannerError:
            raise
        except Exception as e:
            logger.error(f"Failed to {action} ({_context(**ids)}): {e}")
            raise PersistenceError() from e

    def _notify(self, description: str, awaitable: Awaitable[None], **ids) -> None:
        # Runs in its own task so the caller's cancellation never reaches it.
        async def dispatch():
            try:
                await awaitable
            except Exception as e:
                logger.error(f"Failed to send {description} ({_context(**ids)}): {e}")

        task = asyncio.create_task(dispatch())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every email handed off so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def create_trip(self, trip_data: TripCreate) -> UUID:
        trip_data = validate_payload(TripCreate, trip_data)
        trip_id = await self._store_call(
            "create trip",
            self.store.create_trip(
                trip_data.destination,
                trip_data.starts_at,
                trip_data.ends_at,
                trip_data.owner_email,
                list(trip_data.emails_to_invite),
            ),
            owner_email=trip_data.owner_email,
        )
        logger.info(
            f"Trip {trip_id} to {trip_data.destination} created by {trip_data.owner_email} "
            f"with {len(trip_data.emails_to_invite)} invitees"
        )

        self._notify(
            "trip confirmation email",
            self.notifier.send_trip_confirmation_email(trip_id),
            trip_id=trip_id,
        )
        return trip_id

    async def get_trip(self, trip_id: Identifier) -> TripResponse:
        tid = parse_id(trip_id)
        return await self._store_call("get trip", self.store.get_trip(tid), trip_id=tid)

    async def update_trip(self, trip_id: Identifier, trip_data: TripUpdate) -> None:
        tid = parse_id(trip_id)
        trip_data = validate_payload(TripUpdate, trip_data)
        trip = await self.get_trip(tid)

        # Overwrites destination and dates. The store keeps a confirmed flag set
        # even if a confirmation lands after this read.
        await self._store_call(
            "update trip",
            self.store.update_trip(
                tid,
                trip_data.destination,
                trip_data.starts_at,
                trip_data.ends_at,
                trip.is_confirmed,
            ),
            trip_id=tid,
        )
        logger.info(f"Trip {tid} updated")

    async def confirm_trip(self, trip_id: Identifier) -> None:
        tid = parse_id(trip_id)
        await self._store_call("confirm trip", self.store.confirm_trip(tid), trip_id=tid)
        logger.info(f"Trip {tid} confirmed")

    async def confirm_participant(self, participant_id: Identifier) -> None:
        pid = parse_id(participant_id)
        participant = await self._store_call(
            "get participant", self.store.get_participant(pid), participant_id=pid
        )
        await self._store_call(
            "confirm participant", self.store.confirm_participant(pid), participant_id=pid
        )
        logger.info(f"Participant {pid} confirmed on trip {participant.trip_id}")

    async def invite_participant(self, trip_id: Identifier, invite: InviteCreate) -> UUID:
        tid = parse_id(trip_id)
        invite = validate_payload(InviteCreate, invite)
        participant_id = await self._store_call(
            "invite participant to trip",
            self.store.invite_participant(tid, invite.email),
            trip_id=tid,
            participant_email=invite.email,
        )
        logger.info(f"Participant {participant_id} ({invite.email}) invited to trip {tid}")

        self._notify(
            "trip invitation email",
            self.notifier.send_trip_confirmed_email(tid, participant_id),
            trip_id=tid,
            participant_id=participant_id,
        )
        return participant_id

    async def list_participants(self, trip_id: Identifier) -> List[ParticipantResponse]:
        tid = parse_id(trip_id)
        participants = await self._store_call(
            "find trip participants", self.store.list_participants(tid), trip_id=tid
        )
        return [
            ParticipantResponse(
                id=p.id,
                email=p.email,
                name=participant_name(p.email),
                is_owner=p.is_owner,
                is_confirmed=p.is_confirmed,
            )
            for p in participants
        ]

    async def create_activity(self, trip_id: Identifier, activity: ActivityCreate) -> UUID:
        tid = parse_id(trip_id)
        activity = validate_payload(ActivityCreate, activity)
        activity_id = await self._store_call(
            "create activity",
            self.store.create_activity(tid, activity.title, activity.occurs_at),
            trip_id=tid,
        )
        logger.info(f"Activity {activity_id} created on trip {tid}")
        return activity_id

    async def group_activities_by_date(self, trip_id: Identifier) -> List[ActivitiesOnDate]:
        tid = parse_id(trip_id)
        activities = await self._store_call(
            "find trip activities", self.store.list_activities(tid), trip_id=tid
        )
        return group_activities_by_date(activities)

    async def create_link(self, trip_id: Identifier, link: LinkCreate) -> UUID:
        tid = parse_id(trip_id)
        link = validate_payload(LinkCreate, link)
        link_id = await self._store_call(
            "create trip link",
            self.store.create_link(tid, link.title, link.url),
            trip_id=tid,
        )
        logger.info(f"Link {link_id} created on trip {tid}")
        return link_id

    async def list_links(self, trip_id: Identifier) -> List[LinkResponse]:
        tid = parse_id(trip_id)
        return await self._store_call("find trip links", self.store.list_links(tid), trip_id=tid)
