from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.database import SessionLocal, engine
from app.core.exceptions import TripPlannerError
from app.core.init_db import init_db
from app.core.logger import logger
from app.routes import api_router
from app.services.trips.email_invite import TripMailer
from app.services.trips.store import SqlAlchemyTripStore
from app.services.trips.trip_service import TripService

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.PROJECT_DESCRIPTION,
    openapi_url=f"/openapi.json"
)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^(http:\/\/localhost(:\d{1,5})?|http:\/\/127\.0\.0\.1(:\d{1,5})?)$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TripPlannerError)
async def trip_planner_error_handler(request: Request, exc: TripPlannerError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"message": f"invalid input: {errors}"})


# Include all API routes
app.include_router(api_router)

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

@app.on_event("startup")
async def startup_event():
    await init_db()
    store = SqlAlchemyTripStore(SessionLocal)
    app.state.trip_service = TripService(store, TripMailer(store))
    logger.info(f"{settings.PROJECT_NAME} started")

@app.on_event("shutdown")
async def shutdown_event():
    trip_service = getattr(app.state, "trip_service", None)
    if trip_service is not None:
        await trip_service.drain()
    await engine.dispose()
