"""Explicit store passed to services instead of module-level globals"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from domain.repositories import (
    BookingRepository, ClientRepository, RoomRepository, RoomTypeRepository, UnitOfWork
)
from infrastructure.locks import ResourceLocks
from infrastructure.repositories.in_memory_repositories import (
    InMemoryBookingRepository,
    InMemoryClientRepository,
    InMemoryRoomRepository,
    InMemoryRoomTypeRepository,
    InMemoryUnitOfWork,
)
from infrastructure.repositories.sqlalchemy_repositories import SqlDatabase, build_sql_repositories

logger = logging.getLogger(__name__)


@dataclass
class HotelStore:
    room_types: RoomTypeRepository
    rooms: RoomRepository
    clients: ClientRepository
    bookings: BookingRepository
    unit_of_work: UnitOfWork = field(default_factory=InMemoryUnitOfWork)
    locks: ResourceLocks = field(default_factory=ResourceLocks)
    database: Optional[SqlDatabase] = None

    async def open(self) -> None:
        """Create missing tables when backed by a database"""
        if self.database is not None:
            await self.database.create_schema()

    async def close(self) -> None:
        if self.database is not None:
            await self.database.dispose()


def build_store(database_url: Optional[str] = None) -> HotelStore:
    if not database_url:
        logger.info("Using in-memory repositories")
        return HotelStore(
            room_types=InMemoryRoomTypeRepository(),
            rooms=InMemoryRoomRepository(),
            clients=InMemoryClientRepository(),
            bookings=InMemoryBookingRepository(),
        )

    database = SqlDatabase(database_url)
    logger.info("Using SQL repositories at %s", database.engine.url)
    room_types, rooms, clients, bookings = build_sql_repositories(database)
    return HotelStore(
        room_types=room_types,
        rooms=rooms,
        clients=clients,
        bookings=bookings,
        unit_of_work=database,
        database=database,
    )
