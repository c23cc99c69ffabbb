# app/routes/__init__.py
from fastapi import APIRouter
from app.routes.trip import trip_routes, invitation, links
from app.routes.itineraries import activity_routes


api_router = APIRouter()

# Trip routes
api_router.include_router(trip_routes.router)
api_router.include_router(invitation.router)
api_router.include_router(links.router)

# Activity routes
api_router.include_router(activity_routes.router)
