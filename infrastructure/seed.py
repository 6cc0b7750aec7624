"""Demo inventory for Boston Suites"""
import logging
from decimal import Decimal

from domain.entities import Room, RoomType
from domain.enums import RoomStatus
from infrastructure.store import HotelStore

logger = logging.getLogger(__name__)

ROOM_TYPES = [
    RoomType(room_type_id="rt_luxury", name="Luxury Suite", capacity_adults=2, capacity_children=1,
             features=["Ocean View", "King Bed"]),
    RoomType(room_type_id="rt_double", name="Double Room", capacity_adults=2, capacity_children=2,
             features=["City View", "2 Queen Beds"]),
    RoomType(room_type_id="rt_single", name="Single Room", capacity_adults=1, capacity_children=0,
             features=["Standard", "Single Bed"]),
]

# (number, type, beds, price, status)
ROOMS = [
    ("101", "rt_luxury", 1, Decimal("250.00"), RoomStatus.ACTIVE),
    ("104", "rt_luxury", 1, Decimal("250.00"), RoomStatus.ACTIVE),
    ("205", "rt_double", 2, Decimal("120.00"), RoomStatus.ACTIVE),
    ("206", "rt_double", 2, Decimal("120.00"), RoomStatus.MAINTENANCE),
    ("301", "rt_single", 1, Decimal("80.00"), RoomStatus.ACTIVE),
    ("302", "rt_single", 1, Decimal("80.00"), RoomStatus.ACTIVE),
]


async def seed_demo_data(store: HotelStore) -> bool:
    """Seed room types and rooms unless room types already exist"""
    if await store.room_types.find_all():
        return False

    logger.info("Seeding demo inventory")
    for room_type in ROOM_TYPES:
        await store.room_types.save(room_type)
    for number, room_type, beds, price, status in ROOMS:
        await store.rooms.save(Room(
            number=number,
            room_type=room_type,
            beds=beds,
            price_per_night=price,
            status=status,
        ))
    return True
