"""In-Memory Repository Implementations

Entities are copied on the way in and out so a caller mutating an entity it
has not saved yet never changes stored state.

Writes made inside an InMemoryUnitOfWork transaction are journaled and undone
if the transaction fails. Only the keys the failing task wrote are restored,
so concurrent writers on other rooms are untouched.
"""
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from uuid import UUID

from domain.repositories import (
    RoomTypeRepository, RoomRepository, ClientRepository, BookingRepository, UnitOfWork
)
from domain.entities import Room, RoomType, Client, Booking
from domain.enums import BookingStatus, RoomStatus
from domain.exceptions import NotFoundError
from domain.value_objects import DateRange

_MISSING = object()
_journal: ContextVar[Optional[List[Tuple[Dict, Any, Any]]]] = ContextVar("in_memory_journal", default=None)


def _copy(entity):
    return entity.model_copy(deep=True)


class InMemoryUnitOfWork(UnitOfWork):
    """Undo journal over the in-memory repositories"""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _journal.get() is not None:
            yield
            return

        journal: List[Tuple[Dict, Any, Any]] = []
        token = _journal.set(journal)
        try:
            yield
        except Exception:
            for storage, key, previous in reversed(journal):
                if previous is _MISSING:
                    storage.pop(key, None)
                else:
                    storage[key] = previous
            raise
        finally:
            _journal.reset(token)


class _InMemoryRepository:

    def __init__(self):
        self._storage: Dict[Any, Any] = {}

    def _record(self, key) -> None:
        journal = _journal.get()
        if journal is not None:
            journal.append((self._storage, key, self._storage.get(key, _MISSING)))

    def _put(self, key, entity) -> None:
        self._record(key)
        self._storage[key] = _copy(entity)

    def _remove(self, key) -> None:
        self._record(key)
        del self._storage[key]


class InMemoryRoomTypeRepository(_InMemoryRepository, RoomTypeRepository):
    """In-memory implementation of RoomTypeRepository"""

    async def save(self, room_type: RoomType) -> RoomType:
        self._put(room_type.room_type_id, room_type)
        return room_type

    async def find_by_id(self, room_type_id: str) -> Optional[RoomType]:
        room_type = self._storage.get(room_type_id)
        return _copy(room_type) if room_type else None

    async def find_all(self) -> List[RoomType]:
        return [_copy(rt) for rt in sorted(self._storage.values(), key=lambda rt: rt.room_type_id)]


class InMemoryRoomRepository(_InMemoryRepository, RoomRepository):
    """In-memory implementation of RoomRepository"""

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        self._put(room.room_id, room)
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        room = self._storage.get(room_id)
        return _copy(room) if room else None

    async def find_all(
        self,
        status: Optional[RoomStatus] = None,
        room_type: Optional[str] = None
    ) -> List[Room]:
        """Find rooms matching the filters"""
        rooms = [
            r for r in self._storage.values()
            if (status is None or r.status == status)
            and (room_type is None or r.room_type == room_type)
        ]
        return [_copy(r) for r in sorted(rooms, key=lambda r: r.number)]

    async def update(self, room: Room) -> Room:
        """Update room"""
        if room.room_id in self._storage:
            self._put(room.room_id, room)
            return room
        raise NotFoundError("Room", room.room_id)

    async def delete(self, room_id: UUID) -> bool:
        """Delete room"""
        if room_id in self._storage:
            self._remove(room_id)
            return True
        return False


class InMemoryClientRepository(_InMemoryRepository, ClientRepository):
    """In-memory implementation of ClientRepository"""

    async def save(self, client: Client) -> Client:
        """Save client to memory"""
        self._put(client.client_id, client)
        return client

    async def find_by_id(self, client_id: UUID) -> Optional[Client]:
        """Find client by ID"""
        client = self._storage.get(client_id)
        return _copy(client) if client else None

    async def find_by_phone(self, phone: str) -> Optional[Client]:
        """Find client by phone number"""
        for client in self._storage.values():
            if client.phone == phone:
                return _copy(client)
        return None

    async def find_all(self) -> List[Client]:
        """Find all clients"""
        clients = sorted(self._storage.values(), key=lambda c: (c.last_name, c.first_name))
        return [_copy(c) for c in clients]

    async def update(self, client: Client) -> Client:
        """Update client"""
        if client.client_id in self._storage:
            self._put(client.client_id, client)
            return client
        raise NotFoundError("Client", client.client_id)


class InMemoryBookingRepository(_InMemoryRepository, BookingRepository):
    """In-memory implementation of BookingRepository"""

    async def save(self, booking: Booking) -> Booking:
        """Save booking to memory"""
        self._put(booking.booking_id, booking)
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        booking = self._storage.get(booking_id)
        return _copy(booking) if booking else None

    async def find_all(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        """Find bookings, newest first"""
        bookings = [b for b in self._storage.values() if status is None or b.status == status]
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return [_copy(b) for b in bookings]

    async def find_by_room(self, room_id: UUID) -> List[Booking]:
        """Find all bookings for a room"""
        return [_copy(b) for b in self._storage.values() if b.room_id == room_id]

    async def find_overlapping(
        self,
        date_range: DateRange,
        room_id: Optional[UUID] = None,
        exclude_booking_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Find non-cancelled bookings overlapping the range"""
        return [
            _copy(b) for b in self._storage.values()
            if b.conflicts_with(date_range, room_id) and b.booking_id != exclude_booking_id
        ]

    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        if booking.booking_id in self._storage:
            self._put(booking.booking_id, booking)
            return booking
        raise NotFoundError("Booking", booking.booking_id)
