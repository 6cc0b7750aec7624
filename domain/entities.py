"""Domain Entities - Aggregates"""
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal

from domain.enums import BookingStatus, PaymentStatus, RoomStatus
from domain.exceptions import InvalidInputError, InvalidStateError
from domain.value_objects import DateRange


class RoomType(BaseModel):
    """Room type reference data"""
    model_config = ConfigDict(from_attributes=True)

    room_type_id: str
    name: str
    capacity_adults: int = Field(ge=1, default=1)
    capacity_children: int = Field(ge=0, default=0)
    features: List[str] = []


class Room(BaseModel):
    """Room Entity - owned by the room catalog"""
    model_config = ConfigDict(from_attributes=True)

    room_id: UUID = Field(default_factory=uuid4)
    number: str
    room_type: str
    beds: int = Field(ge=1, default=1)
    price_per_night: Decimal = Field(gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: RoomStatus = RoomStatus.ACTIVE
    created_at: datetime = Field(default_factory=datetime.now)

    def is_bookable(self) -> bool:
        return self.status == RoomStatus.ACTIVE


class Client(BaseModel):
    """Client Entity - a guest, deduplicated by phone"""
    model_config = ConfigDict(from_attributes=True)

    client_id: UUID = Field(default_factory=uuid4)
    first_name: str
    last_name: str = ""
    email: Optional[str] = None
    phone: str
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)


class Booking(BaseModel):
    """Booking Aggregate Root Entity"""
    model_config = ConfigDict(from_attributes=True)

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)

    # References
    room_id: UUID
    client_id: UUID

    # Value Objects
    date_range: DateRange

    # Price snapshot
    price_per_night: Decimal = Field(gt=0)
    base_price: Decimal = Field(gt=0)
    total_amount: Decimal = Field(gt=0)

    # Status axes
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    payment_status: PaymentStatus = PaymentStatus.UNPAID

    # Actual arrival and departure
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None

    # Metadata
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)
    version: int = 1

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room_id: UUID,
        client_id: UUID,
        date_range: DateRange,
        price_per_night: Decimal,
        final_price: Optional[Decimal] = None,
        now: Optional[datetime] = None
    ) -> "Booking":
        """Create new booking in PENDING_PAYMENT / UNPAID"""
        base_price, total_amount = Booking.price_stay(date_range, price_per_night, final_price)
        now = now or datetime.now()

        return Booking(
            room_id=room_id,
            client_id=client_id,
            date_range=date_range,
            price_per_night=price_per_night,
            base_price=base_price,
            total_amount=total_amount,
            status=BookingStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.UNPAID,
            created_at=now,
            modified_at=now
        )

    @staticmethod
    def price_stay(
        date_range: DateRange,
        price_per_night: Decimal,
        final_price: Optional[Decimal] = None
    ) -> tuple:
        """Return (base_price, total_amount) for a stay"""
        if price_per_night <= 0:
            raise InvalidInputError("Price per night must be greater than 0")
        if final_price is not None and final_price <= 0:
            raise InvalidInputError("Final price must be greater than 0")

        base_price = price_per_night * date_range.nights
        total_amount = final_price if final_price is not None else base_price
        return base_price, total_amount

    # ==================== PROPERTIES ====================
    @property
    def check_in(self) -> date:
        return self.date_range.check_in

    @property
    def check_out(self) -> date:
        return self.date_range.check_out

    @property
    def nights(self) -> int:
        return self.date_range.nights

    # ==================== MODIFICATION METHODS ====================
    def modify(
        self,
        room_id: UUID,
        client_id: UUID,
        date_range: DateRange,
        price_per_night: Decimal,
        final_price: Optional[Decimal] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Replace room, guest, dates and price snapshot"""
        if not self.is_editable():
            raise InvalidStateError(
                f"Cannot edit booking with status {self.status.value}"
            )

        base_price, total_amount = Booking.price_stay(date_range, price_per_night, final_price)

        self.room_id = room_id
        self.client_id = client_id
        self.date_range = date_range
        self.price_per_night = price_per_night
        self.base_price = base_price
        self.total_amount = total_amount
        self._touch(now)

    # ==================== STATE TRANSITION METHODS ====================
    def set_payment_status(self, payment_status: PaymentStatus, now: Optional[datetime] = None) -> None:
        """Record payment; PAID confirms the booking, ON_HOLD reverts it"""
        if payment_status == PaymentStatus.UNPAID:
            raise InvalidInputError("Payment status can only be set to PAID or ON_HOLD")

        if self.status not in (BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED):
            raise InvalidStateError(
                f"Cannot change payment status of booking with status {self.status.value}"
            )

        self.payment_status = payment_status
        if payment_status == PaymentStatus.PAID:
            self.status = BookingStatus.CONFIRMED
        else:
            self.status = BookingStatus.PENDING_PAYMENT
        self._touch(now)

    def check_in_guest(self, now: Optional[datetime] = None) -> None:
        """Mark guest as checked in"""
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStateError(
                f"Cannot check in with status {self.status.value}"
            )

        now = now or datetime.now()
        self.status = BookingStatus.CHECKED_IN
        self.actual_check_in = now
        self._touch(now)

    def check_out_guest(self, now: Optional[datetime] = None) -> None:
        """Mark guest as checked out"""
        if self.status != BookingStatus.CHECKED_IN:
            raise InvalidStateError(
                f"Cannot check out with status {self.status.value}"
            )

        now = now or datetime.now()
        self.status = BookingStatus.CHECKED_OUT
        self.actual_check_out = now
        self._touch(now)

    def cancel(self, now: Optional[datetime] = None) -> None:
        """Cancel booking; only before the guest has arrived"""
        if not self.is_cancellable():
            raise InvalidStateError(
                f"Cannot cancel booking with status {self.status.value}"
            )

        self.status = BookingStatus.CANCELLED
        self._touch(now)

    # ==================== QUERY METHODS ====================
    def is_editable(self) -> bool:
        return self.status == BookingStatus.PENDING_PAYMENT

    def is_cancellable(self) -> bool:
        return self.status in (BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED)

    def blocks_room(self) -> bool:
        """Cancelled bookings never take part in conflict checks"""
        return self.status != BookingStatus.CANCELLED

    def conflicts_with(self, date_range: DateRange, room_id: Optional[UUID] = None) -> bool:
        """Live booking overlapping the range; room_id None matches any room"""
        return (
            self.blocks_room()
            and (room_id is None or self.room_id == room_id)
            and self.date_range.overlaps(date_range)
        )

    def _touch(self, now: Optional[datetime]) -> None:
        self.modified_at = now or datetime.now()
        self.version += 1
