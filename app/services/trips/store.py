from datetime import datetime, timedelta, timezone
from typing import List, Protocol
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from app.core.exceptions import (
    AlreadyConfirmedError,
    DuplicateParticipantError,
    NotFoundError,
    PersistenceError,
)
from app.core.logger import logger
from app.models.itinerary.activity import Activity
from app.models.trips.link import Link
from app.models.trips.participant import Participant
from app.models.trips.trip_model import Trip
from app.schemas.itineraries.activity import ActivityResponse
from app.schemas.trip.invite import ParticipantRecord
from app.schemas.trip.link import LinkResponse
from app.schemas.trip.trip_schema import TripResponse

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class TripStore(Protocol):
    """Persistence operations the trip lifecycle relies on.

    Every call is atomic on its own; ``create_trip`` creates the trip and all of
    its initial participants in a single transaction.
    Confirmations raise ``AlreadyConfirmedError`` unless they flip the flag
    themselves, and ``update_trip`` never clears a confirmed flag.
    """

    async def get_trip(self, trip_id: UUID) -> TripResponse: ...

    async def create_trip(
        self,
        destination: str,
        starts_at: datetime,
        ends_at: datetime,
        owner_email: str,
        emails_to_invite: List[str],
    ) -> UUID: ...

    async def update_trip(
        self,
        trip_id: UUID,
        destination: str,
        starts_at: datetime,
        ends_at: datetime,
        is_confirmed: bool,
    ) -> None: ...

    async def confirm_trip(self, trip_id: UUID) -> None: ...

    async def get_participant(self, participant_id: UUID) -> ParticipantRecord: ...

    async def confirm_participant(self, participant_id: UUID) -> None: ...

    async def invite_participant(self, trip_id: UUID, email: str) -> UUID: ...

    async def list_participants(self, trip_id: UUID) -> List[ParticipantRecord]: ...

    async def create_activity(self, trip_id: UUID, title: str, occurs_at: datetime) -> UUID: ...

    async def list_activities(self, trip_id: UUID) -> List[ActivityResponse]: ...

    async def create_link(self, trip_id: UUID, title: str, url: str) -> UUID: ...

    async def list_links(self, trip_id: UUID) -> List[LinkResponse]: ...


def _integrity_code(exc: IntegrityError) -> str:
    """Map a driver integrity error onto its SQLSTATE class."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code
    text = str(orig).upper()
    if "UNIQUE" in text:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY" in text:
        return FOREIGN_KEY_VIOLATION
    return ""


class SqlAlchemyTripStore:
    """TripStore backed by SQLAlchemy. One transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _get_trip_row(self, db: AsyncSession, trip_id: UUID) -> Trip:
        result = await db.execute(select(Trip).where(Trip.id == trip_id))
        trip = result.scalar_one_or_none()
        if not trip:
            raise NotFoundError("trip")
        return trip

    async def get_trip(self, trip_id: UUID) -> TripResponse:
        try:
            async with self.session_factory() as db:
                trip = await self._get_trip_row(db, trip_id)
                return TripResponse.model_validate(trip)
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def create_trip(self, destination, starts_at, ends_at, owner_email, emails_to_invite) -> UUID:
        try:
            async with self.session_factory() as db, db.begin():
                new_trip = Trip(
                    destination=destination,
                    starts_at=starts_at,
                    ends_at=ends_at,
                    is_confirmed=False,
                )
                db.add(new_trip)
                await db.flush()

                # Stamped in request order so listing returns the owner first
                stamp = datetime.now(timezone.utc)
                emails = [owner_email, *emails_to_invite]
                for position, email in enumerate(emails):
                    db.add(Participant(
                        trip_id=new_trip.id,
                        email=email,
                        is_owner=position == 0,
                        created_at=stamp + timedelta(microseconds=position),
                    ))
                await db.flush()
                return new_trip.id
        except SQLAlchemyError as e:
            # Duplicate emails in one request land here too; nothing was written.
            raise PersistenceError("failed to create trip, try again later") from e

    async def update_trip(self, trip_id, destination, starts_at, ends_at, is_confirmed) -> None:
        try:
            async with self.session_factory() as db, db.begin():
                result = await db.execute(
                    update(Trip)
                    .where(Trip.id == trip_id)
                    .values(
                        destination=destination,
                        starts_at=starts_at,
                        ends_at=ends_at,
                        # The flag only ever goes up; a stale read cannot lower it.
                        is_confirmed=or_(Trip.is_confirmed, is_confirmed),
                    )
                )
                if result.rowcount == 0:
                    raise NotFoundError("trip")
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def get_participant(self, participant_id: UUID) -> ParticipantRecord:
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(Participant).where(Participant.id == participant_id))
                participant = result.scalar_one_or_none()
                if not participant:
                    raise NotFoundError("participant")
                return ParticipantRecord.model_validate(participant)
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def _confirm_row(self, model, row_id: UUID, entity: str) -> None:
        # Only an unconfirmed row matches, so concurrent confirmations race on
        # the UPDATE and exactly one of them changes the flag.
        try:
            async with self.session_factory() as db, db.begin():
                result = await db.execute(
                    update(model)
                    .where(model.id == row_id, model.is_confirmed.is_(False))
                    .values(is_confirmed=True)
                )
                if result.rowcount == 0:
                    exists = await db.execute(select(model.id).where(model.id == row_id))
                    if exists.scalar_one_or_none() is None:
                        raise NotFoundError(entity)
                    raise AlreadyConfirmedError(entity)
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def confirm_trip(self, trip_id: UUID) -> None:
        await self._confirm_row(Trip, trip_id, "trip")

    async def confirm_participant(self, participant_id: UUID) -> None:
        await self._confirm_row(Participant, participant_id, "participant")

    async def invite_participant(self, trip_id: UUID, email: str) -> UUID:
        # No existence pre-check: the constraints decide, so racing invites
        # resolve to exactly one row.
        try:
            async with self.session_factory() as db, db.begin():
                participant = Participant(trip_id=trip_id, email=email)
                db.add(participant)
                await db.flush()
                return participant.id
        except IntegrityError as e:
            code = _integrity_code(e)
            if code == UNIQUE_VIOLATION:
                raise DuplicateParticipantError() from e
            if code == FOREIGN_KEY_VIOLATION:
                raise NotFoundError("trip") from e
            raise PersistenceError() from e
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def list_participants(self, trip_id: UUID) -> List[ParticipantRecord]:
        try:
            async with self.session_factory() as db:
                await self._get_trip_row(db, trip_id)
                result = await db.execute(
                    select(Participant)
                    .where(Participant.trip_id == trip_id)
                    .order_by(Participant.created_at)
                )
                return [ParticipantRecord.model_validate(p) for p in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def _insert_child(self, row) -> UUID:
        try:
            async with self.session_factory() as db, db.begin():
                db.add(row)
                await db.flush()
                return row.id
        except IntegrityError as e:
            if _integrity_code(e) == FOREIGN_KEY_VIOLATION:
                raise NotFoundError("trip") from e
            raise PersistenceError() from e
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def create_activity(self, trip_id: UUID, title: str, occurs_at: datetime) -> UUID:
        return await self._insert_child(Activity(trip_id=trip_id, title=title, occurs_at=occurs_at))

    async def list_activities(self, trip_id: UUID) -> List[ActivityResponse]:
        try:
            async with self.session_factory() as db:
                await self._get_trip_row(db, trip_id)
                result = await db.execute(
                    select(Activity)
                    .where(Activity.trip_id == trip_id)
                    .order_by(Activity.created_at)
                )
                return [ActivityResponse.model_validate(a) for a in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError() from e

    async def create_link(self, trip_id: UUID, title: str, url: str) -> UUID:
        return await self._insert_child(Link(trip_id=trip_id, title=title, url=url))

    async def list_links(self, trip_id: UUID) -> List[LinkResponse]:
        try:
            async with self.session_factory() as db:
                await self._get_trip_row(db, trip_id)
                result = await db.execute(
                    select(Link)
                    .where(Link.trip_id == trip_id)
                    .order_by(Link.created_at)
                )
                links = [LinkResponse.model_validate(link) for link in result.scalars().all()]
                logger.debug(f"Loaded {len(links)} links for trip {trip_id}")
                return links
        except SQLAlchemyError as e:
            raise PersistenceError() from e
