from fastapi import APIRouter, Depends, Response, status
from app.schemas.trip.trip_schema import TripCreate, TripUpdate, TripDetailsResponse, CreateTripResponse
from app.dependencies.services import get_trip_service
from app.services.trips.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post("", response_model=CreateTripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip_route(
    trip: TripCreate,
    trip_service: TripService = Depends(get_trip_service)
):
    trip_id = await trip_service.create_trip(trip)
    return CreateTripResponse(trip_id=trip_id)


@router.get("/{trip_id}", response_model=TripDetailsResponse)
async def get_trip(
    trip_id: str,
    trip_service: TripService = Depends(get_trip_service)
):
    return TripDetailsResponse(trip=await trip_service.get_trip(trip_id))


@router.put("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_trip_route(
    trip_id: str,
    trip_update: TripUpdate,
    trip_service: TripService = Depends(get_trip_service)
):
    await trip_service.update_trip(trip_id, trip_update)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{trip_id}/confirm", status_code=status.HTTP_204_NO_CONTENT)
async def confirm_trip_route(
    trip_id: str,
    trip_service: TripService = Depends(get_trip_service)
):
    await trip_service.confirm_trip(trip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
