"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import BookingStatus, PaymentStatus, RoomStatus


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomTypeRequest(BaseModel):
    """Create room type request DTO"""
    room_type_id: str = Field(min_length=1, max_length=40)
    name: str = Field(min_length=1)
    capacity_adults: int = Field(ge=1, default=1)
    capacity_children: int = Field(ge=0, default=0)
    features: List[str] = []


class RoomTypeResponse(BaseModel):
    """Room type response DTO"""
    room_type_id: str
    name: str
    capacity_adults: int
    capacity_children: int
    features: List[str]


class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    number: str = Field(min_length=1)
    room_type: str
    beds: int = Field(ge=1, default=1)
    price_per_night: Decimal = Field(gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: RoomStatus = RoomStatus.ACTIVE


class UpdateRoomRequest(BaseModel):
    """Update room request DTO; omitted fields are unchanged"""
    number: Optional[str] = Field(None, min_length=1)
    room_type: Optional[str] = None
    beds: Optional[int] = Field(None, ge=1)
    price_per_night: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[RoomStatus] = None


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    number: str
    room_type: str
    beds: int
    price_per_night: Decimal
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: str


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class CheckAvailabilityRequest(BaseModel):
    """Check availability request DTO"""
    room_type: Optional[str] = None
    check_in: date
    nights: int = Field(ge=1)


class AvailabilityMeta(BaseModel):
    check_in: date
    check_out: date
    nights: int


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    available_rooms: List[RoomResponse]
    meta: AvailabilityMeta


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class BookingRequest(BaseModel):
    """Create / edit booking request DTO"""
    room_id: UUID
    guest_name: str = Field(min_length=1)
    guest_phone: str = Field(min_length=1)
    guest_email: Optional[str] = None
    check_in: date
    nights: int = Field(ge=1)
    price_per_night: Optional[Decimal] = Field(None, gt=0)
    base_price: Optional[Decimal] = Field(None, gt=0)
    final_price: Optional[Decimal] = Field(None, gt=0)


class PaymentStatusRequest(BaseModel):
    """Payment status request DTO"""
    payment_status: PaymentStatus


class BookingResponse(BaseModel):
    """Booking response DTO, joined with room and guest for display"""
    booking_id: UUID
    room_id: UUID
    room_number: Optional[str] = None
    room_type: Optional[str] = None
    client_id: UUID
    guest_name: str
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    check_in: date
    check_out: date
    nights: int
    price_per_night: Decimal
    base_price: Decimal
    total_amount: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# CLIENT SCHEMAS
# ============================================================================

class ClientResponse(BaseModel):
    """Client response DTO"""
    client_id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: str
    created_at: datetime


# ============================================================================
# REPORTING SCHEMAS
# ============================================================================

class DashboardStatsResponse(BaseModel):
    """Dashboard counts DTO"""
    today: date
    total_rooms: int
    active_rooms: int
    occupied: int
    available: int
    check_ins_today: int
    check_outs_today: int
    expected_check_ins_today: int
    expected_check_outs_today: int


class RevenueLineResponse(BaseModel):
    """Revenue per room DTO"""
    room_id: UUID
    room_name: str
    price_per_night: Decimal
    nights_occupied: int
    total_revenue: Decimal
