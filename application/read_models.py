"""Read-side models produced by the application services"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from domain.entities import Booking, Room


class BookingDetails(BaseModel):
    """A booking joined with its room and guest for display"""
    booking: Booking
    room_number: Optional[str] = None
    room_type: Optional[str] = None
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None

    @property
    def guest_name(self) -> str:
        return f"{self.guest_first_name or ''} {self.guest_last_name or ''}".strip()


class AvailabilityResult(BaseModel):
    available_rooms: List[Room]
    check_in: date
    check_out: date
    nights: int


class DashboardStats(BaseModel):
    today: date
    total_rooms: int
    active_rooms: int
    occupied: int
    available: int
    check_ins_today: int
    check_outs_today: int
    expected_check_ins_today: int
    expected_check_outs_today: int


class RevenueLine(BaseModel):
    room_id: UUID
    room_name: str
    price_per_night: Decimal
    nights_occupied: int
    total_revenue: Decimal
