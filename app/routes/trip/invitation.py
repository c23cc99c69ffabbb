from fastapi import APIRouter, Depends, Response, status
from app.schemas.trip.invite import InviteCreate, InviteResponse, ParticipantsResponse
from app.dependencies.services import get_trip_service
from app.services.trips.trip_service import TripService

router = APIRouter(tags=["Participants"])


@router.post("/trips/{trip_id}/invites", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def invite_participant_route(
    trip_id: str,
    invite_data: InviteCreate,
    trip_service: TripService = Depends(get_trip_service)
):
    participant_id = await trip_service.invite_participant(trip_id, invite_data)
    return InviteResponse(participant_id=participant_id)


@router.get("/trips/{trip_id}/participants", response_model=ParticipantsResponse)
async def list_participants_route(
    trip_id: str,
    trip_service: TripService = Depends(get_trip_service)
):
    return ParticipantsResponse(participants=await trip_service.list_participants(trip_id))


@router.patch("/participants/{participant_id}/confirm", status_code=status.HTTP_204_NO_CONTENT)
async def confirm_participant_route(
    participant_id: str,
    trip_service: TripService = Depends(get_trip_service)
):
    await trip_service.confirm_participant(participant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
