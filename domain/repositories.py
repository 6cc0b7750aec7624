"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Optional, List
from uuid import UUID

from domain.entities import Room, RoomType, Client, Booking
from domain.enums import BookingStatus, RoomStatus
from domain.value_objects import DateRange


class RoomTypeRepository(ABC):
    """Repository interface for room type reference data"""

    @abstractmethod
    async def save(self, room_type: RoomType) -> RoomType:
        """Save room type"""
        pass

    @abstractmethod
    async def find_by_id(self, room_type_id: str) -> Optional[RoomType]:
        """Find room type by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[RoomType]:
        """Find all room types"""
        pass


class RoomRepository(ABC):
    """Repository interface for Room"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_all(
        self,
        status: Optional[RoomStatus] = None,
        room_type: Optional[str] = None
    ) -> List[Room]:
        """Find rooms, optionally filtered by status and type, ordered by number"""
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        """Update room"""
        pass

    @abstractmethod
    async def delete(self, room_id: UUID) -> bool:
        """Delete room"""
        pass


class ClientRepository(ABC):
    """Repository interface for Client"""

    @abstractmethod
    async def save(self, client: Client) -> Client:
        """Save client"""
        pass

    @abstractmethod
    async def find_by_id(self, client_id: UUID) -> Optional[Client]:
        """Find client by ID"""
        pass

    @abstractmethod
    async def find_by_phone(self, phone: str) -> Optional[Client]:
        """Find client by phone number"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Client]:
        """Find all clients"""
        pass

    @abstractmethod
    async def update(self, client: Client) -> Client:
        """Update client"""
        pass


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate"""

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Save booking"""
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_all(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        """Find bookings, newest first"""
        pass

    @abstractmethod
    async def find_by_room(self, room_id: UUID) -> List[Booking]:
        """Find all bookings for a room"""
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        date_range: DateRange,
        room_id: Optional[UUID] = None,
        exclude_booking_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Find non-cancelled bookings overlapping the range"""
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        """Update booking"""
        pass


class UnitOfWork(ABC):
    """Groups repository writes so they are kept or discarded together"""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """Async context; any exception inside it discards the writes made there.

        Nested use joins the enclosing transaction.
        """
        pass
