"""API Dependencies - services built from the application's store"""
from fastapi import Depends, Request

from application.services import (
    AvailabilityService, BookingService, ClientRegistry, Clock, ReportingService, RoomCatalogService
)
from infrastructure.store import HotelStore


def get_store(request: Request) -> HotelStore:
    return request.app.state.store


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_catalog_service(store: HotelStore = Depends(get_store)) -> RoomCatalogService:
    return RoomCatalogService(store.rooms, store.room_types, store.bookings, store.locks)


def get_client_registry(
    store: HotelStore = Depends(get_store),
    clock: Clock = Depends(get_clock)
) -> ClientRegistry:
    return ClientRegistry(store.clients, clock)


def get_availability_service(store: HotelStore = Depends(get_store)) -> AvailabilityService:
    return AvailabilityService(store.rooms, store.bookings)


def get_booking_service(
    store: HotelStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
    catalog: RoomCatalogService = Depends(get_catalog_service),
    clients: ClientRegistry = Depends(get_client_registry),
    availability: AvailabilityService = Depends(get_availability_service)
) -> BookingService:
    return BookingService(store.bookings, catalog, clients, availability, store.unit_of_work, store.locks, clock)


def get_reporting_service(
    store: HotelStore = Depends(get_store),
    clock: Clock = Depends(get_clock)
) -> ReportingService:
    return ReportingService(store.rooms, store.room_types, store.bookings, clock)
