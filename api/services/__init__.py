"""
MotoresRD - API Services.

This module contains business logic services for the API.
"""

from api.services.availability_service import AvailabilityService, get_availability_service
from api.services.booking_service import BookingService, get_booking_service
from api.services.cache_service import CacheService, get_cache_service
from api.services.catalog_io_service import CatalogIOService, get_catalog_io_service
from api.services.catalog_service import CatalogService, get_catalog_service
from api.services.dashboard_service import DashboardService, get_dashboard_service
from api.services.make_image_service import MakeImageService, get_make_image_service
from api.services.motorcycle_service import MotorcycleService, get_motorcycle_service
from api.services.user_service import UserService, get_user_service

__all__ = [
    "AvailabilityService",
    "get_availability_service",
    "BookingService",
    "get_booking_service",
    "CacheService",
    "get_cache_service",
    "CatalogIOService",
    "get_catalog_io_service",
    "CatalogService",
    "get_catalog_service",
    "DashboardService",
    "get_dashboard_service",
    "MakeImageService",
    "get_make_image_service",
    "MotorcycleService",
    "get_motorcycle_service",
    "UserService",
    "get_user_service",
]
