"""SQLAlchemy Repository Implementations

Four related tables: room_types, rooms, clients and bookings. Bookings are
indexed by (check_in, check_out) and by status so overlap queries and
status-filtered listings stay cheap.

All I/O goes through an AsyncSession so queries never block the event loop.
A repository call made inside SqlDatabase.transaction() joins that session
and commits with it; otherwise it runs in a transaction of its own.
"""
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import date, datetime
from decimal import Decimal
from typing import AsyncIterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    make_url,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from domain.entities import Booking, Client, Room, RoomType
from domain.enums import BookingStatus, PaymentStatus, RoomStatus
from domain.exceptions import ConflictError, NotFoundError, StorageUnavailableError
from domain.repositories import (
    BookingRepository, ClientRepository, RoomRepository, RoomTypeRepository, UnitOfWork
)
from domain.value_objects import DateRange

logger = logging.getLogger(__name__)

_ambient_session: ContextVar[Optional[Tuple["SqlDatabase", AsyncSession]]] = ContextVar(
    "sql_ambient_session", default=None
)


class Base(DeclarativeBase):
    pass


class RoomTypeRow(Base):
    __tablename__ = "room_types"
    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    capacity_adults: Mapped[int] = mapped_column(Integer, default=1)
    capacity_children: Mapped[int] = mapped_column(Integer, default=0)
    features: Mapped[list] = mapped_column(JSON, default=list)


class RoomRow(Base):
    __tablename__ = "rooms"
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    number: Mapped[str] = mapped_column(String(20))
    type_id: Mapped[str] = mapped_column(String(40), ForeignKey("room_types.id"))
    beds: Mapped[int] = mapped_column(Integer, default=1)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), default=None)
    status: Mapped[str] = mapped_column(String(20), default=RoomStatus.ACTIVE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime)


class ClientRow(Base):
    __tablename__ = "clients"
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100), default="")
    email: Mapped[Optional[str]] = mapped_column(String(200), default=None)
    phone: Mapped[str] = mapped_column(String(40), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime)
    modified_at: Mapped[datetime] = mapped_column(DateTime)


class BookingRow(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_dates", "check_in", "check_out"),
        Index("ix_bookings_status", "status"),
        Index("ix_bookings_room", "room_id"),
    )
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    room_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("rooms.id"))
    client_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("clients.id"))
    check_in: Mapped[date] = mapped_column(Date)
    check_out: Mapped[date] = mapped_column(Date)
    nights: Mapped[int] = mapped_column(Integer)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(String(20))
    payment_status: Mapped[str] = mapped_column(String(20))
    actual_check_in: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)
    actual_check_out: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime)
    modified_at: Mapped[datetime] = mapped_column(DateTime)
    version: Mapped[int] = mapped_column(Integer, default=1)


# ============================================================================
# ENGINE & SESSIONS
# ============================================================================

def create_sql_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; plain sqlite URLs are switched to aiosqlite"""
    url = make_url(database_url)
    kwargs = {}
    if url.get_backend_name() == "sqlite":
        if url.get_driver_name() != "aiosqlite":
            url = url.set(drivername="sqlite+aiosqlite")
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    return create_async_engine(url, **kwargs)


class SqlDatabase(UnitOfWork):
    """Engine, session factory and the transaction shared by repositories"""

    def __init__(self, database_url: str):
        self.engine = create_sql_engine(database_url)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def transaction(self, entity_name: str = "Record") -> AsyncIterator[AsyncSession]:
        """Commit on success, roll back on any error; nested calls join the open session"""
        ambient = _ambient_session.get()
        if ambient is not None and ambient[0] is self:
            yield ambient[1]
            return

        session = self.session_factory()
        token = _ambient_session.set((self, session))
        try:
            yield session
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.warning("Integrity violation writing %s: %s", entity_name, e.orig)
            raise ConflictError(f"{entity_name} violates a uniqueness or reference constraint")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Storage failure on %s: %s", entity_name, e)
            raise StorageUnavailableError(f"Storage unavailable: {e.__class__.__name__}")
        except Exception:
            await session.rollback()
            raise
        finally:
            _ambient_session.reset(token)
            await session.close()


class _SqlRepository:
    entity_name = "Record"

    def __init__(self, database: SqlDatabase):
        self._database = database

    def _session(self):
        return self._database.transaction(self.entity_name)


# ============================================================================
# ROW <-> ENTITY MAPPING
# ============================================================================

def _room_type_to_entity(row: RoomTypeRow) -> RoomType:
    return RoomType(
        room_type_id=row.id,
        name=row.name,
        capacity_adults=row.capacity_adults,
        capacity_children=row.capacity_children,
        features=list(row.features or []),
    )


def _room_to_entity(row: RoomRow) -> Room:
    return Room(
        room_id=row.id,
        number=row.number,
        room_type=row.type_id,
        beds=row.beds,
        price_per_night=row.price_per_night,
        description=row.description,
        image_url=row.image_url,
        status=RoomStatus(row.status),
        created_at=row.created_at,
    )


def _room_to_row(room: Room) -> RoomRow:
    return RoomRow(
        id=room.room_id,
        number=room.number,
        type_id=room.room_type,
        beds=room.beds,
        price_per_night=room.price_per_night,
        description=room.description,
        image_url=room.image_url,
        status=room.status.value,
        created_at=room.created_at,
    )


def _client_to_entity(row: ClientRow) -> Client:
    return Client(
        client_id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        phone=row.phone,
        created_at=row.created_at,
        modified_at=row.modified_at,
    )


def _client_to_row(client: Client) -> ClientRow:
    return ClientRow(
        id=client.client_id,
        first_name=client.first_name,
        last_name=client.last_name,
        email=client.email,
        phone=client.phone,
        created_at=client.created_at,
        modified_at=client.modified_at,
    )


def _booking_to_entity(row: BookingRow) -> Booking:
    return Booking(
        booking_id=row.id,
        room_id=row.room_id,
        client_id=row.client_id,
        date_range=DateRange(check_in=row.check_in, nights=row.nights),
        price_per_night=row.price_per_night,
        base_price=row.base_price,
        total_amount=row.total_amount,
        status=BookingStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        actual_check_in=row.actual_check_in,
        actual_check_out=row.actual_check_out,
        created_at=row.created_at,
        modified_at=row.modified_at,
        version=row.version,
    )


def _booking_to_row(booking: Booking) -> BookingRow:
    return BookingRow(
        id=booking.booking_id,
        room_id=booking.room_id,
        client_id=booking.client_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        nights=booking.nights,
        price_per_night=booking.price_per_night,
        base_price=booking.base_price,
        total_amount=booking.total_amount,
        status=booking.status.value,
        payment_status=booking.payment_status.value,
        actual_check_in=booking.actual_check_in,
        actual_check_out=booking.actual_check_out,
        created_at=booking.created_at,
        modified_at=booking.modified_at,
        version=booking.version,
    )


# ============================================================================
# REPOSITORIES
# ============================================================================

class SqlRoomTypeRepository(_SqlRepository, RoomTypeRepository):
    entity_name = "Room type"

    async def save(self, room_type: RoomType) -> RoomType:
        async with self._session() as session:
            await session.merge(RoomTypeRow(
                id=room_type.room_type_id,
                name=room_type.name,
                capacity_adults=room_type.capacity_adults,
                capacity_children=room_type.capacity_children,
                features=list(room_type.features),
            ))
        return room_type

    async def find_by_id(self, room_type_id: str) -> Optional[RoomType]:
        async with self._session() as session:
            row = await session.get(RoomTypeRow, room_type_id)
            return _room_type_to_entity(row) if row else None

    async def find_all(self) -> List[RoomType]:
        async with self._session() as session:
            rows = (await session.scalars(select(RoomTypeRow).order_by(RoomTypeRow.id))).all()
            return [_room_type_to_entity(r) for r in rows]


class SqlRoomRepository(_SqlRepository, RoomRepository):
    entity_name = "Room"

    async def save(self, room: Room) -> Room:
        async with self._session() as session:
            await session.merge(_room_to_row(room))
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        async with self._session() as session:
            row = await session.get(RoomRow, room_id)
            return _room_to_entity(row) if row else None

    async def find_all(
        self,
        status: Optional[RoomStatus] = None,
        room_type: Optional[str] = None
    ) -> List[Room]:
        stmt = select(RoomRow)
        if status is not None:
            stmt = stmt.where(RoomRow.status == status.value)
        if room_type is not None:
            stmt = stmt.where(RoomRow.type_id == room_type)
        async with self._session() as session:
            rows = (await session.scalars(stmt.order_by(RoomRow.number))).all()
            return [_room_to_entity(r) for r in rows]

    async def update(self, room: Room) -> Room:
        async with self._session() as session:
            if await session.get(RoomRow, room.room_id) is None:
                raise NotFoundError("Room", room.room_id)
            await session.merge(_room_to_row(room))
        return room

    async def delete(self, room_id: UUID) -> bool:
        async with self._session() as session:
            row = await session.get(RoomRow, room_id)
            if row is None:
                return False
            await session.delete(row)
        return True


class SqlClientRepository(_SqlRepository, ClientRepository):
    entity_name = "Client"

    async def save(self, client: Client) -> Client:
        async with self._session() as session:
            session.add(_client_to_row(client))
        return client

    async def find_by_id(self, client_id: UUID) -> Optional[Client]:
        async with self._session() as session:
            row = await session.get(ClientRow, client_id)
            return _client_to_entity(row) if row else None

    async def find_by_phone(self, phone: str) -> Optional[Client]:
        async with self._session() as session:
            row = (await session.scalars(select(ClientRow).where(ClientRow.phone == phone))).first()
            return _client_to_entity(row) if row else None

    async def find_all(self) -> List[Client]:
        async with self._session() as session:
            rows = (await session.scalars(
                select(ClientRow).order_by(ClientRow.last_name, ClientRow.first_name)
            )).all()
            return [_client_to_entity(r) for r in rows]

    async def update(self, client: Client) -> Client:
        async with self._session() as session:
            if await session.get(ClientRow, client.client_id) is None:
                raise NotFoundError("Client", client.client_id)
            await session.merge(_client_to_row(client))
        return client


class SqlBookingRepository(_SqlRepository, BookingRepository):
    entity_name = "Booking"

    async def save(self, booking: Booking) -> Booking:
        async with self._session() as session:
            session.add(_booking_to_row(booking))
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        async with self._session() as session:
            row = await session.get(BookingRow, booking_id)
            return _booking_to_entity(row) if row else None

    async def find_all(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        stmt = select(BookingRow)
        if status is not None:
            stmt = stmt.where(BookingRow.status == status.value)
        async with self._session() as session:
            rows = (await session.scalars(stmt.order_by(BookingRow.created_at.desc()))).all()
            return [_booking_to_entity(r) for r in rows]

    async def find_by_room(self, room_id: UUID) -> List[Booking]:
        async with self._session() as session:
            rows = (await session.scalars(select(BookingRow).where(BookingRow.room_id == room_id))).all()
            return [_booking_to_entity(r) for r in rows]

    async def find_overlapping(
        self,
        date_range: DateRange,
        room_id: Optional[UUID] = None,
        exclude_booking_id: Optional[UUID] = None
    ) -> List[Booking]:
        stmt = select(BookingRow).where(
            BookingRow.status != BookingStatus.CANCELLED.value,
            BookingRow.check_in < date_range.check_out,
            BookingRow.check_out > date_range.check_in,
        )
        if room_id is not None:
            stmt = stmt.where(BookingRow.room_id == room_id)
        if exclude_booking_id is not None:
            stmt = stmt.where(BookingRow.id != exclude_booking_id)
        async with self._session() as session:
            rows = (await session.scalars(stmt)).all()
            return [_booking_to_entity(r) for r in rows]

    async def update(self, booking: Booking) -> Booking:
        async with self._session() as session:
            if await session.get(BookingRow, booking.booking_id) is None:
                raise NotFoundError("Booking", booking.booking_id)
            await session.merge(_booking_to_row(booking))
        return booking


def build_sql_repositories(database: SqlDatabase):
    """Return (room_types, rooms, clients, bookings) sharing one database"""
    return (
        SqlRoomTypeRepository(database),
        SqlRoomRepository(database),
        SqlClientRepository(database),
        SqlBookingRepository(database),
    )
