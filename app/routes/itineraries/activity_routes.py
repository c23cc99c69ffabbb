from fastapi import APIRouter, Depends, status
from app.schemas.itineraries.activity import ActivityCreate, ActivitiesResponse, CreateActivityResponse
from app.dependencies.services import get_trip_service
from app.services.trips.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["Activities"])


# Activities bucketed per day, earliest day first
@router.get("/{trip_id}/activities", response_model=ActivitiesResponse)
async def get_activities(
    trip_id: str,
    trip_service: TripService = Depends(get_trip_service)
):
    return ActivitiesResponse(activities=await trip_service.group_activities_by_date(trip_id))


@router.post("/{trip_id}/activities", response_model=CreateActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    trip_id: str,
    activity: ActivityCreate,
    trip_service: TripService = Depends(get_trip_service)
):
    activity_id = await trip_service.create_activity(trip_id, activity)
    return CreateActivityResponse(activity_id=activity_id)
