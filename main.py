from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Callable, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import (
    # Rooms
    CreateRoomTypeRequest, RoomTypeResponse, CreateRoomRequest, UpdateRoomRequest, RoomResponse,
    # Availability
    CheckAvailabilityRequest, AvailabilityResponse, AvailabilityMeta,
    # Bookings
    BookingRequest, PaymentStatusRequest, BookingResponse,
    # Clients & reporting
    ClientResponse, DashboardStatsResponse, RevenueLineResponse
)
from api.dependencies import (
    get_availability_service, get_booking_service, get_catalog_service,
    get_client_registry, get_reporting_service
)
from application.read_models import BookingDetails
from application.services import (
    AvailabilityService, BookingService, ClientRegistry, ReportingService, RoomCatalogService, build_guest
)
from domain.enums import BookingStatus, PaymentStatus, RoomStatus
from domain.exceptions import (
    ConflictError, HotelDomainError, InvalidInputError, InvalidStateError, NotFoundError,
    StorageUnavailableError
)
from infrastructure.config import Settings
from infrastructure.logging_config import setup_logging
from infrastructure.seed import seed_demo_data
from infrastructure.store import HotelStore, build_store

_ERROR_STATUS = [
    (InvalidInputError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidStateError, 409),
    (StorageUnavailableError, 503),
]


def _http_error(error: HotelDomainError) -> HTTPException:
    """Translate a domain error into the matching HTTP status"""
    for error_cls, status_code in _ERROR_STATUS:
        if isinstance(error, error_cls):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=500, detail=error.message)


router = APIRouter(prefix="/api/v1")

# ============================================================================
# ENUM REFERENCE ENDPOINTS
# ============================================================================

@router.get("/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Get all BookingStatus enum values"""
    return {
        "values": [item.value for item in BookingStatus],
        "description": "Booking lifecycle: PENDING_PAYMENT, CONFIRMED, CHECKED_IN, CHECKED_OUT, CANCELLED"
    }

@router.get("/enums/payment-status", tags=["Enum Reference"])
async def get_payment_statuses():
    """Get all PaymentStatus enum values"""
    return {
        "values": [item.value for item in PaymentStatus],
        "description": "Payment status values: UNPAID, PAID, ON_HOLD"
    }

@router.get("/enums/room-status", tags=["Enum Reference"])
async def get_room_statuses():
    """Get all RoomStatus enum values"""
    return {
        "values": [item.value for item in RoomStatus],
        "description": "Room status values: ACTIVE, MAINTENANCE"
    }

# ============================================================================
# ROOM CATALOG ENDPOINTS
# ============================================================================

@router.get("/room-types", response_model=List[RoomTypeResponse], tags=["Rooms"])
async def list_room_types(service: RoomCatalogService = Depends(get_catalog_service)):
    """List room types"""
    room_types = await service.list_room_types()
    return [RoomTypeResponse(**rt.model_dump()) for rt in room_types]

@router.post("/room-types", response_model=RoomTypeResponse, status_code=201, tags=["Rooms"])
async def create_room_type(
    request: CreateRoomTypeRequest,
    service: RoomCatalogService = Depends(get_catalog_service)
):
    """Create room type"""
    try:
        room_type = await service.create_room_type(**request.model_dump())
        return RoomTypeResponse(**room_type.model_dump())
    except HotelDomainError as e:
        raise _http_error(e)

@router.get("/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    status: Optional[str] = None,
    type: Optional[str] = None,
    service: RoomCatalogService = Depends(get_catalog_service)
):
    """List rooms, optionally filtered by status and room type"""
    try:
        rooms = await service.list_rooms(status=status, room_type=type)
        return [_room_to_response(r) for r in rooms]
    except HotelDomainError as e:
        raise _http_error(e)

@router.get("/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(room_id: UUID, service: RoomCatalogService = Depends(get_catalog_service)):
    """Get room by ID"""
    try:
        return _room_to_response(await service.get_room(room_id))
    except HotelDomainError as e:
        raise _http_error(e)

@router.post("/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(request: CreateRoomRequest, service: RoomCatalogService = Depends(get_catalog_service)):
    """Add room to the catalog"""
    try:
        room = await service.create_room(**request.model_dump())
        return _room_to_response(room)
    except HotelDomainError as e:
        raise _http_error(e)

@router.put("/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomCatalogService = Depends(get_catalog_service)
):
    """Update room details"""
    try:
        room = await service.update_room(room_id, **request.model_dump(exclude_unset=True))
        return _room_to_response(room)
    except HotelDomainError as e:
        raise _http_error(e)

@router.delete("/rooms/{room_id}", status_code=204, tags=["Rooms"])
async def delete_room(room_id: UUID, service: RoomCatalogService = Depends(get_catalog_service)):
    """Delete room; refused while bookings reference it"""
    try:
        await service.delete_room(room_id)
        return Response(status_code=204)
    except HotelDomainError as e:
        raise _http_error(e)

# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@router.post("/availability/check", response_model=AvailabilityResponse, tags=["Availability"])
async def check_availability(
    request: CheckAvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service)
):
    """Find rooms free for the requested stay"""
    try:
        result = await service.find_available(request.check_in, request.nights, request.room_type)
        return AvailabilityResponse(
            available_rooms=[_room_to_response(r) for r in result.available_rooms],
            meta=AvailabilityMeta(check_in=result.check_in, check_out=result.check_out, nights=result.nights)
        )
    except HotelDomainError as e:
        raise _http_error(e)

# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@router.post("/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(request: BookingRequest, service: BookingService = Depends(get_booking_service)):
    """Create new booking"""
    try:
        booking = await service.create_booking(
            room_id=request.room_id,
            guest=build_guest(request.guest_name, request.guest_phone, request.guest_email),
            check_in=request.check_in,
            nights=request.nights,
            price_per_night=request.price_per_night,
            base_price=request.base_price,
            final_price=request.final_price
        )
        return _booking_to_response(await service.get_booking_details(booking.booking_id))
    except HotelDomainError as e:
        raise _http_error(e)

@router.get("/bookings", response_model=List[BookingResponse], tags=["Bookings"])
async def list_bookings(status: Optional[str] = None, service: BookingService = Depends(get_booking_service)):
    """List bookings, newest first"""
    try:
        return [_booking_to_response(d) for d in await service.list_bookings(status=status)]
    except HotelDomainError as e:
        raise _http_error(e)

@router.get("/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(booking_id: UUID, service: BookingService = Depends(get_booking_service)):
    """Get booking by ID"""
    try:
        return _booking_to_response(await service.get_booking_details(booking_id))
    except HotelDomainError as e:
        raise _http_error(e)

@router.put("/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def edit_booking(
    booking_id: UUID,
    request: BookingRequest,
    service: BookingService = Depends(get_booking_service)
):
    """Edit a booking that is still awaiting payment"""
    try:
        await service.edit_booking(
            booking_id=booking_id,
            room_id=request.room_id,
            guest=build_guest(request.guest_name, request.guest_phone, request.guest_email),
            check_in=request.check_in,
            nights=request.nights,
            price_per_night=request.price_per_night,
            base_price=request.base_price,
            final_price=request.final_price
        )
        return _booking_to_response(await service.get_booking_details(booking_id))
    except HotelDomainError as e:
        raise _http_error(e)

@router.post("/bookings/{booking_id}/payment-status", response_model=BookingResponse, tags=["Bookings"])
async def set_payment_status(
    booking_id: UUID,
    request: PaymentStatusRequest,
    service: BookingService = Depends(get_booking_service)
):
    """Record payment; PAID confirms, ON_HOLD returns the booking to pending"""
    return await _apply(service, booking_id, lambda: service.set_payment_status(booking_id, request.payment_status))

@router.post("/bookings/{booking_id}/check-in", response_model=BookingResponse, tags=["Bookings"])
async def check_in_guest(booking_id: UUID, service: BookingService = Depends(get_booking_service)):
    """Check in guest"""
    return await _apply(service, booking_id, lambda: service.check_in(booking_id))

@router.post("/bookings/{booking_id}/check-out", response_model=BookingResponse, tags=["Bookings"])
async def check_out_guest(booking_id: UUID, service: BookingService = Depends(get_booking_service)):
    """Check out guest"""
    return await _apply(service, booking_id, lambda: service.check_out(booking_id))

@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse, tags=["Bookings"])
async def cancel_booking(booking_id: UUID, service: BookingService = Depends(get_booking_service)):
    """Cancel booking"""
    return await _apply(service, booking_id, lambda: service.cancel(booking_id))

# ============================================================================
# CLIENT ENDPOINTS
# ============================================================================

@router.get("/clients", response_model=List[ClientResponse], tags=["Clients"])
async def list_clients(registry: ClientRegistry = Depends(get_client_registry)):
    """List clients"""
    return [ClientResponse(**c.model_dump()) for c in await registry.list_clients()]

@router.get("/clients/{client_id}", response_model=ClientResponse, tags=["Clients"])
async def get_client(client_id: UUID, registry: ClientRegistry = Depends(get_client_registry)):
    """Get client by ID"""
    try:
        return ClientResponse(**(await registry.get_client(client_id)).model_dump())
    except HotelDomainError as e:
        raise _http_error(e)

# ============================================================================
# REPORTING ENDPOINTS
# ============================================================================

@router.get("/dashboard/stats", response_model=DashboardStatsResponse, tags=["Reporting"])
async def dashboard_stats(service: ReportingService = Depends(get_reporting_service)):
    """Occupancy counts for today"""
    try:
        stats = await service.dashboard_stats()
        return DashboardStatsResponse(**stats.model_dump())
    except HotelDomainError as e:
        raise _http_error(e)

@router.get("/revenue", response_model=List[RevenueLineResponse], tags=["Reporting"])
async def get_revenue(
    start_date: date,
    end_date: date,
    room_id: Optional[UUID] = None,
    service: ReportingService = Depends(get_reporting_service)
):
    """Nights occupied and revenue per room over [start_date, end_date)"""
    try:
        lines = await service.revenue(start_date, end_date, room_id=room_id)
        return [RevenueLineResponse(**line.model_dump()) for line in lines]
    except HotelDomainError as e:
        raise _http_error(e)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

async def _apply(service: BookingService, booking_id: UUID, action: Callable) -> BookingResponse:
    """Run a lifecycle action and return the refreshed booking"""
    try:
        await action()
        return _booking_to_response(await service.get_booking_details(booking_id))
    except HotelDomainError as e:
        raise _http_error(e)

def _room_to_response(room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        number=room.number,
        room_type=room.room_type,
        beds=room.beds,
        price_per_night=room.price_per_night,
        description=room.description,
        image_url=room.image_url,
        status=room.status.value
    )

def _booking_to_response(details: BookingDetails) -> BookingResponse:
    """Convert joined booking details to BookingResponse"""
    booking = details.booking
    return BookingResponse(
        booking_id=booking.booking_id,
        room_id=booking.room_id,
        room_number=details.room_number,
        room_type=details.room_type,
        client_id=booking.client_id,
        guest_name=details.guest_name,
        guest_phone=details.guest_phone,
        guest_email=details.guest_email,
        check_in=booking.check_in,
        check_out=booking.check_out,
        nights=booking.nights,
        price_per_night=booking.price_per_night,
        base_price=booking.base_price,
        total_amount=booking.total_amount,
        status=booking.status,
        payment_status=booking.payment_status,
        actual_check_in=booking.actual_check_in,
        actual_check_out=booking.actual_check_out,
        created_at=booking.created_at,
        modified_at=booking.modified_at,
        version=booking.version
    )

async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are InvalidInput (400), not 422"""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[HotelStore] = None,
    clock: Callable[[], datetime] = datetime.now
) -> FastAPI:
    """Build the API around an explicit store; nothing is kept in module globals"""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    store = store or build_store(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.open()
        if settings.seed_demo_data:
            await seed_demo_data(store)
        yield
        await store.close()

    app = FastAPI(
        title=settings.app_title,
        description="Room inventory, availability and booking lifecycle for Boston Suites",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "message": "Boston Suites API is running"}

    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
