from fastapi import APIRouter, Depends, status
from app.schemas.trip.link import LinkCreate, LinksResponse, CreateLinkResponse
from app.dependencies.services import get_trip_service
from app.services.trips.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["Links"])


@router.get("/{trip_id}/links", response_model=LinksResponse)
async def list_links_route(
    trip_id: str,
    trip_service: TripService = Depends(get_trip_service)
):
    return LinksResponse(links=await trip_service.list_links(trip_id))


@router.post("/{trip_id}/links", response_model=CreateLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link_route(
    trip_id: str,
    link: LinkCreate,
    trip_service: TripService = Depends(get_trip_service)
):
    link_id = await trip_service.create_link(trip_id, link)
    return CreateLinkResponse(link_id=link_id)
