from fastapi import Request
from app.services.trips.trip_service import TripService


async def get_trip_service(request: Request) -> TripService:
    """FastAPI dependency injection for the app-wide TripService."""
    return request.app.state.trip_service
