import asyncio
from datetime import datetime
from typing import Callable, Protocol
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import NotificationError, TripPlannerError
from app.core.logger import logger
from app.schemas.trip.trip_schema import TripResponse
from app.services.email_service import send_email_html
from app.services.trips.store import TripStore


class Notifier(Protocol):
    async def send_trip_confirmation_email(self, trip_id: UUID) -> None: ...

    async def send_trip_confirmed_email(self, trip_id: UUID, participant_id: UUID) -> None: ...


def generate_trip_confirm_link(trip_id: UUID) -> str:
    return f"{settings.FRONTEND_BASE_URL}/trips/{trip_id}/confirm"


def generate_participant_confirm_link(participant_id: UUID) -> str:
    return f"{settings.FRONTEND_BASE_URL}/participants/{participant_id}/confirm"


def format_trip_dates(starts_at: datetime, ends_at: datetime) -> str:
    return f"{starts_at:%d %b %Y} to {ends_at:%d %b %Y}"


def render_trip_confirmation(trip: TripResponse, confirm_link: str) -> str:
    return f"""
    <html>
      <body>
        <p>Hey there,<br><br>
           You asked to create a trip to <strong>{trip.destination}</strong>,
           {format_trip_dates(trip.starts_at, trip.ends_at)}.<br><br>
           Click the button below to confirm your trip:<br><br>
           <a href="{confirm_link}" style="padding: 10px 20px; background-color: #0984e3; color: white; text-decoration: none; border-radius: 5px;">Confirm Trip</a>
           <br><br>
           Or paste this link into your browser:<br>
           <code>{confirm_link}</code>
           <br><br>
           If you didn't ask for this, just ignore this email.
        </p>
      </body>
    </html>
    """


def render_trip_invitation(trip: TripResponse, confirm_link: str) -> str:
    return f"""
    <html>
      <body>
        <p>Hey there,<br><br>
           You've been invited to join a trip to <strong>{trip.destination}</strong>,
           {format_trip_dates(trip.starts_at, trip.ends_at)}.<br><br>
           Click the button below to confirm your presence:<br><br>
           <a href="{confirm_link}" style="padding: 10px 20px; background-color: #0984e3; color: white; text-decoration: none; border-radius: 5px;">Confirm Presence</a>
           <br><br>
           Or paste this link into your browser:<br>
           <code>{confirm_link}</code>
           <br><br>
           Happy planning!
        </p>
      </body>
    </html>
    """


class TripMailer:
    """
    Sends trip emails over SMTP.

    Recipients are looked up through the store so the mailer only needs
    identifiers. The blocking SMTP exchange runs in a worker thread.
    """

    def __init__(self, store: TripStore, send: Callable[[str, str, str], None] = send_email_html):
        self.store = store
        self.send = send

    async def _deliver(self, to_email: str, subject: str, html: str) -> None:
        try:
            await asyncio.to_thread(self.send, to_email, subject, html)
        except Exception as e:
            raise NotificationError(f"failed to send email to {to_email}") from e
        logger.info(f"[Email] Sent '{subject}' to {to_email}")

    async def send_trip_confirmation_email(self, trip_id: UUID) -> None:
        try:
            trip = await self.store.get_trip(trip_id)
            participants = await self.store.list_participants(trip_id)
        except TripPlannerError as e:
            raise NotificationError(f"failed to load trip {trip_id}: {e.message}") from e

        owner = next((p for p in participants if p.is_owner), None)
        if owner is None:
            raise NotificationError(f"trip {trip_id} has no owner to notify")

        html = render_trip_confirmation(trip, generate_trip_confirm_link(trip_id))
        await self._deliver(owner.email, f"Confirm your trip to {trip.destination}", html)

    async def send_trip_confirmed_email(self, trip_id: UUID, participant_id: UUID) -> None:
        try:
            trip = await self.store.get_trip(trip_id)
            participant = await self.store.get_participant(participant_id)
        except TripPlannerError as e:
            raise NotificationError(f"failed to load trip {trip_id}: {e.message}") from e

        html = render_trip_invitation(trip, generate_participant_confirm_link(participant_id))
        await self._deliver(participant.email, f"You're invited to a trip to {trip.destination}", html)
