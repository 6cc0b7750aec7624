"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from application.read_models import AvailabilityResult, BookingDetails, DashboardStats, RevenueLine
from domain.entities import Booking, Client, Room, RoomType
from domain.enums import BookingStatus, PaymentStatus, RoomStatus, REVENUE_STATUSES
from domain.exceptions import (
    ConflictError, InvalidInputError, InvalidStateError, NotFoundError
)
from domain.repositories import (
    BookingRepository, ClientRepository, RoomRepository, RoomTypeRepository, UnitOfWork
)
from domain.value_objects import DateRange, GuestInfo
from infrastructure.locks import ResourceLocks, phone_key, room_key

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_CLEARABLE_ROOM_FIELDS = frozenset({"description", "image_url"})


# ============================================================================
# INPUT PARSING
# ============================================================================

def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}"
        for err in error.errors()
    )


def _validated(model_cls, **data):
    """Build a pydantic model, reporting failures as InvalidInputError"""
    try:
        return model_cls(**data)
    except ValidationError as e:
        raise InvalidInputError(_validation_message(e))


def parse_date(value, field_name: str = "check_in") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidInputError(f"Invalid {field_name}: expected a YYYY-MM-DD date")


def parse_nights(value) -> int:
    if value is None or isinstance(value, bool):
        raise InvalidInputError("Nights is required")
    try:
        nights = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError("Nights must be a whole number")
    if isinstance(value, float) and value != nights:
        raise InvalidInputError("Nights must be a whole number")
    if nights < 1:
        raise InvalidInputError("Nights must be at least 1")
    return nights


def parse_money(value, field_name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInputError(f"Invalid {field_name}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError(f"{field_name} must be greater than 0")
    return amount


def build_guest(name: str, phone: str, email: Optional[str] = None) -> GuestInfo:
    """Guest details from a display name; the name is split on its first space"""
    if not name or not name.strip():
        raise InvalidInputError("Guest name is required")
    if not phone or not phone.strip():
        raise InvalidInputError("Guest phone is required")
    try:
        return GuestInfo.from_full_name(name, phone.strip(), email or None)
    except ValidationError as e:
        raise InvalidInputError(_validation_message(e))


def _parse_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(item.value for item in enum_cls)
        raise InvalidInputError(f"Invalid {field_name} '{value}'; expected one of {allowed}")


# ============================================================================
# ROOM CATALOG
# ============================================================================

class RoomCatalogService:
    """Service for room and room type management"""

    def __init__(self,
                 room_repository: RoomRepository,
                 room_type_repository: RoomTypeRepository,
                 booking_repository: BookingRepository,
                 locks: ResourceLocks):
        self.rooms = room_repository
        self.room_types = room_type_repository
        self.bookings = booking_repository
        self.locks = locks

    async def list_room_types(self) -> List[RoomType]:
        return await self.room_types.find_all()

    async def get_room_type(self, room_type_id: str) -> RoomType:
        room_type = await self.room_types.find_by_id(room_type_id)
        if not room_type:
            raise NotFoundError("Room type", room_type_id)
        return room_type

    async def create_room_type(
        self,
        room_type_id: str,
        name: str,
        capacity_adults: int = 1,
        capacity_children: int = 0,
        features: Optional[List[str]] = None
    ) -> RoomType:
        """Register a room type; identifiers are unique"""
        if await self.room_types.find_by_id(room_type_id):
            raise ConflictError(f"Room type {room_type_id} already exists")
        room_type = _validated(
            RoomType,
            room_type_id=room_type_id,
            name=name,
            capacity_adults=capacity_adults,
            capacity_children=capacity_children,
            features=features or [],
        )
        return await self.room_types.save(room_type)

    async def list_rooms(self, status=None, room_type: Optional[str] = None) -> List[Room]:
        status = _parse_enum(RoomStatus, status, "room status")
        return await self.rooms.find_all(status=status, room_type=room_type or None)

    async def get_room(self, room_id: UUID) -> Room:
        room = await self.rooms.find_by_id(room_id)
        if not room:
            raise NotFoundError("Room", room_id)
        return room

    async def create_room(
        self,
        number: str,
        room_type: str,
        price_per_night,
        beds: int = 1,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        status=RoomStatus.ACTIVE
    ) -> Room:
        """Add a room to the catalog"""
        await self._ensure_room_type(room_type)
        room = _validated(
            Room,
            number=number,
            room_type=room_type,
            beds=beds,
            price_per_night=price_per_night,
            description=description,
            image_url=image_url,
            status=_parse_enum(RoomStatus, status, "room status"),
        )
        await self.rooms.save(room)
        logger.info("Room %s (%s) added to catalog", room.number, room.room_id)
        return room

    async def update_room(self, room_id: UUID, **changes) -> Room:
        """Partially update a room.

        None leaves a required field unchanged and clears an optional one
        (description, image_url).
        """
        changes = {
            k: v for k, v in changes.items()
            if v is not None or k in _CLEARABLE_ROOM_FIELDS
        }
        if "room_type" in changes:
            await self._ensure_room_type(changes["room_type"])
        if "status" in changes:
            changes["status"] = _parse_enum(RoomStatus, changes["status"], "room status")

        async with self.locks.hold(room_key(room_id)):
            room = await self.get_room(room_id)
            updated = _validated(Room, **{**room.model_dump(), **changes})
            await self.rooms.update(updated)
        logger.info("Room %s updated: %s", updated.number, sorted(changes))
        return updated

    async def delete_room(self, room_id: UUID) -> None:
        """Delete a room; refused while any booking references it"""
        async with self.locks.hold(room_key(room_id)):
            room = await self.get_room(room_id)
            bookings = await self.bookings.find_by_room(room_id)
            if bookings:
                logger.warning("Refusing to delete room %s with %d bookings", room.number, len(bookings))
                raise ConflictError(
                    f"Room {room.number} has {len(bookings)} booking(s); "
                    "set it to MAINTENANCE instead of deleting it"
                )
            await self.rooms.delete(room_id)
        logger.info("Room %s deleted", room.number)

    async def _ensure_room_type(self, room_type_id: str) -> None:
        if not await self.room_types.find_by_id(room_type_id):
            raise InvalidInputError(f"Unknown room type {room_type_id}")


# ============================================================================
# CLIENT REGISTRY
# ============================================================================

class ClientRegistry:
    """Guest records keyed by phone number.

    Writes are not locked here; callers that write clients hold the phone
    lock for the duration of their own check-then-write sequence.
    """

    def __init__(self, repository: ClientRepository, clock: Clock = datetime.now):
        self.repository = repository
        self.clock = clock

    async def find_or_create(self, guest: GuestInfo) -> Client:
        """Reuse the client owning this phone, or create one"""
        client = await self.repository.find_by_phone(guest.phone)
        if client:
            return client
        return await self._create(guest)

    async def upsert(self, guest: GuestInfo) -> Client:
        """Like find_or_create, but refresh name and email of an existing client"""
        client = await self.repository.find_by_phone(guest.phone)
        if not client:
            return await self._create(guest)

        if (client.first_name, client.last_name, client.email) != (guest.first_name, guest.last_name, guest.email):
            client.first_name = guest.first_name
            client.last_name = guest.last_name
            client.email = guest.email
            client.modified_at = self.clock()
            await self.repository.update(client)
        return client

    async def get_client(self, client_id: UUID) -> Client:
        client = await self.repository.find_by_id(client_id)
        if not client:
            raise NotFoundError("Client", client_id)
        return client

    async def list_clients(self) -> List[Client]:
        return await self.repository.find_all()

    async def _create(self, guest: GuestInfo) -> Client:
        now = self.clock()
        client = Client(
            first_name=guest.first_name,
            last_name=guest.last_name,
            email=guest.email,
            phone=guest.phone,
            created_at=now,
            modified_at=now,
        )
        await self.repository.save(client)
        logger.info("Registered client %s for phone %s", client.client_id, client.phone)
        return client


# ============================================================================
# AVAILABILITY ENGINE
# ============================================================================

class AvailabilityService:
    """Which rooms are free for a stay"""

    def __init__(self, room_repository: RoomRepository, booking_repository: BookingRepository):
        self.rooms = room_repository
        self.bookings = booking_repository

    @staticmethod
    def build_range(check_in, nights) -> DateRange:
        return DateRange(check_in=parse_date(check_in), nights=parse_nights(nights))

    async def find_available(self, check_in, nights, room_type: Optional[str] = None) -> AvailabilityResult:
        """Active rooms of the requested type with no overlapping live booking"""
        date_range = self.build_range(check_in, nights)

        rooms = await self.rooms.find_all(status=RoomStatus.ACTIVE, room_type=room_type or None)
        taken = {b.room_id for b in await self.bookings.find_overlapping(date_range)}
        available = [r for r in rooms if r.room_id not in taken]

        return AvailabilityResult(
            available_rooms=available,
            check_in=date_range.check_in,
            check_out=date_range.check_out,
            nights=date_range.nights,
        )

    async def ensure_room_free(
        self,
        room_id: UUID,
        date_range: DateRange,
        exclude_booking_id: Optional[UUID] = None
    ) -> None:
        """Raise ConflictError if a live booking on the room overlaps the range"""
        clashes = await self.bookings.find_overlapping(
            date_range, room_id=room_id, exclude_booking_id=exclude_booking_id
        )
        if clashes:
            clash = min(clashes, key=lambda b: b.check_in)
            logger.warning(
                "Room %s busy %s..%s (booking %s)",
                room_id, clash.check_in, clash.check_out, clash.booking_id
            )
            raise ConflictError(
                f"Room is no longer available for these dates: booked "
                f"{clash.check_in.isoformat()} to {clash.check_out.isoformat()}"
            )


# ============================================================================
# BOOKING LIFECYCLE
# ============================================================================

class BookingService:
    """Service for Booking business use cases"""

    def __init__(self,
                 repository: BookingRepository,
                 catalog: RoomCatalogService,
                 clients: ClientRegistry,
                 availability: AvailabilityService,
                 unit_of_work: UnitOfWork,
                 locks: ResourceLocks,
                 clock: Clock = datetime.now):
        self.repository = repository
        self.catalog = catalog
        self.clients = clients
        self.availability = availability
        self.unit_of_work = unit_of_work
        self.locks = locks
        self.clock = clock

    async def create_booking(
        self,
        room_id: UUID,
        guest: GuestInfo,
        check_in,
        nights,
        price_per_night=None,
        base_price=None,
        final_price=None
    ) -> Booking:
        """Reserve a room for a guest; the booking starts in PENDING_PAYMENT"""
        date_range = self.availability.build_range(check_in, nights)
        rate = parse_money(price_per_night, "price_per_night")
        final = parse_money(final_price, "final_price")

        async with self.locks.hold(room_key(room_id), phone_key(guest.phone)):
            room = await self._bookable_room(room_id)
            rate = rate or room.price_per_night
            self._check_base_price(base_price, rate, date_range)

            await self.availability.ensure_room_free(room.room_id, date_range)
            async with self.unit_of_work.transaction():
                client = await self.clients.find_or_create(guest)
                booking = Booking.create(
                    room_id=room.room_id,
                    client_id=client.client_id,
                    date_range=date_range,
                    price_per_night=rate,
                    final_price=final,
                    now=self.clock()
                )
                await self.repository.save(booking)

        logger.info(
            "Booking %s created: room %s, %s..%s, total %s",
            booking.booking_id, room.number, booking.check_in, booking.check_out, booking.total_amount
        )
        return booking

    async def edit_booking(
        self,
        booking_id: UUID,
        room_id: UUID,
        guest: GuestInfo,
        check_in,
        nights,
        price_per_night=None,
        base_price=None,
        final_price=None
    ) -> Booking:
        """Change room, guest, dates and prices of a PENDING_PAYMENT booking"""
        date_range = self.availability.build_range(check_in, nights)
        rate = parse_money(price_per_night, "price_per_night")
        final = parse_money(final_price, "final_price")

        current = await self.get_booking(booking_id)
        async with self.locks.hold(room_key(current.room_id), room_key(room_id), phone_key(guest.phone)):
            booking = await self.get_booking(booking_id)
            if booking.room_id != current.room_id:
                raise ConflictError("Booking was modified concurrently; reload and retry")
            if not booking.is_editable():
                logger.warning("Edit rejected for booking %s in %s", booking_id, booking.status.value)
                raise InvalidStateError(
                    f"Cannot edit booking with status {booking.status.value}; "
                    f"only {BookingStatus.PENDING_PAYMENT.value} bookings can be edited"
                )

            room = await self._bookable_room(room_id)
            rate = rate or room.price_per_night
            self._check_base_price(base_price, rate, date_range)

            await self.availability.ensure_room_free(room.room_id, date_range, exclude_booking_id=booking_id)
            async with self.unit_of_work.transaction():
                client = await self.clients.upsert(guest)
                booking.modify(
                    room_id=room.room_id,
                    client_id=client.client_id,
                    date_range=date_range,
                    price_per_night=rate,
                    final_price=final,
                    now=self.clock()
                )
                await self.repository.update(booking)

        logger.info("Booking %s edited: room %s, %s..%s", booking_id, room.number, booking.check_in, booking.check_out)
        return booking

    async def set_payment_status(self, booking_id: UUID, payment_status) -> Booking:
        """PAID confirms the booking, ON_HOLD returns it to PENDING_PAYMENT"""
        payment_status = _parse_enum(PaymentStatus, payment_status, "payment status")
        if payment_status is None:
            raise InvalidInputError("Payment status is required")
        return await self._transition(
            booking_id, "payment status", lambda b: b.set_payment_status(payment_status, self.clock())
        )

    async def check_in(self, booking_id: UUID) -> Booking:
        return await self._transition(booking_id, "check-in", lambda b: b.check_in_guest(self.clock()))

    async def check_out(self, booking_id: UUID) -> Booking:
        return await self._transition(booking_id, "check-out", lambda b: b.check_out_guest(self.clock()))

    async def cancel(self, booking_id: UUID) -> Booking:
        return await self._transition(booking_id, "cancel", lambda b: b.cancel(self.clock()))

    async def get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def get_booking_details(self, booking_id: UUID) -> BookingDetails:
        booking = await self.get_booking(booking_id)
        return (await self._with_details([booking]))[0]

    async def list_bookings(self, status=None) -> List[BookingDetails]:
        """All bookings joined with room and guest, newest first"""
        status = _parse_enum(BookingStatus, status, "booking status")
        bookings = await self.repository.find_all(status=status)
        return await self._with_details(bookings)

    async def _with_details(self, bookings: List[Booking]) -> List[BookingDetails]:
        rooms: Dict[UUID, Optional[Room]] = {}
        clients: Dict[UUID, Optional[Client]] = {}
        details = []
        for booking in bookings:
            if booking.room_id not in rooms:
                rooms[booking.room_id] = await self.catalog.rooms.find_by_id(booking.room_id)
            if booking.client_id not in clients:
                clients[booking.client_id] = await self.clients.repository.find_by_id(booking.client_id)
            room = rooms[booking.room_id]
            client = clients[booking.client_id]
            details.append(BookingDetails(
                booking=booking,
                room_number=room.number if room else None,
                room_type=room.room_type if room else None,
                guest_first_name=client.first_name if client else None,
                guest_last_name=client.last_name if client else None,
                guest_phone=client.phone if client else None,
                guest_email=client.email if client else None,
            ))
        return details

    async def _transition(self, booking_id: UUID, action: str, apply: Callable[[Booking], None]) -> Booking:
        current = await self.get_booking(booking_id)
        async with self.locks.hold(room_key(current.room_id)):
            booking = await self.get_booking(booking_id)
            previous = booking.status
            try:
                apply(booking)
            except InvalidStateError as e:
                logger.warning("Booking %s %s rejected: %s", booking_id, action, e)
                raise
            await self.repository.update(booking)

        logger.info(
            "Booking %s %s: %s -> %s (payment %s)",
            booking_id, action, previous.value, booking.status.value, booking.payment_status.value
        )
        return booking

    async def _bookable_room(self, room_id: UUID) -> Room:
        room = await self.catalog.get_room(room_id)
        if not room.is_bookable():
            raise ConflictError(f"Room {room.number} is not available ({room.status.value})")
        return room

    @staticmethod
    def _check_base_price(base_price, rate: Decimal, date_range: DateRange) -> None:
        base = parse_money(base_price, "base_price")
        if base is not None and base != rate * date_range.nights:
            raise InvalidInputError(
                f"base_price {base} does not match {date_range.nights} night(s) at {rate}"
            )


# ============================================================================
# OCCUPANCY & REVENUE
# ============================================================================

class ReportingService:
    """Dashboard counts and revenue derived from booking state"""

    def __init__(self,
                 room_repository: RoomRepository,
                 room_type_repository: RoomTypeRepository,
                 booking_repository: BookingRepository,
                 clock: Clock = datetime.now):
        self.rooms = room_repository
        self.room_types = room_type_repository
        self.bookings = booking_repository
        self.clock = clock

    async def dashboard_stats(self) -> DashboardStats:
        today = self.clock().date()
        rooms = await self.rooms.find_all()
        bookings = await self.bookings.find_all()

        active_rooms = sum(1 for r in rooms if r.status == RoomStatus.ACTIVE)
        occupied = sum(1 for b in bookings if b.status == BookingStatus.CHECKED_IN)
        live = [b for b in bookings if b.blocks_room()]

        return DashboardStats(
            today=today,
            total_rooms=len(rooms),
            active_rooms=active_rooms,
            occupied=occupied,
            available=max(0, active_rooms - occupied),
            check_ins_today=sum(
                1 for b in bookings if b.actual_check_in and b.actual_check_in.date() == today
            ),
            check_outs_today=sum(
                1 for b in bookings if b.actual_check_out and b.actual_check_out.date() == today
            ),
            expected_check_ins_today=sum(1 for b in live if b.check_in == today),
            expected_check_outs_today=sum(1 for b in live if b.check_out == today),
        )

    async def revenue(self, start_date, end_date, room_id: Optional[UUID] = None) -> List[RevenueLine]:
        """Nights and revenue per room over [start_date, end_date) at current room prices"""
        start = parse_date(start_date, "start_date")
        end = parse_date(end_date, "end_date")
        if end <= start:
            raise InvalidInputError("end_date must be after start_date")

        if room_id is not None:
            room = await self.rooms.find_by_id(room_id)
            if not room:
                raise NotFoundError("Room", room_id)
            rooms = [room]
        else:
            rooms = await self.rooms.find_all()

        window = DateRange(check_in=start, nights=(end - start).days)
        nights_by_room: Dict[UUID, int] = {}
        for booking in await self.bookings.find_overlapping(window, room_id=room_id):
            if booking.status not in REVENUE_STATUSES:
                continue
            nights = booking.date_range.nights_within(start, end)
            nights_by_room[booking.room_id] = nights_by_room.get(booking.room_id, 0) + nights

        type_names = {rt.room_type_id: rt.name for rt in await self.room_types.find_all()}
        lines = []
        for room in rooms:
            nights = nights_by_room.get(room.room_id, 0)
            lines.append(RevenueLine(
                room_id=room.room_id,
                room_name=f"{room.number} ({type_names.get(room.room_type, room.room_type)})",
                price_per_night=room.price_per_night,
                nights_occupied=nights,
                total_revenue=room.price_per_night * nights,
            ))
        return lines
