"""
MotoresRD - API Models module.
"""

from api.models.booking import (
    # Booking
    BookingStatus,
    BookingFormData,
    BookingStatusUpdate,
    CancelBookingRequest,
    BookingResponse,
    BookingWithDetails,
    # Availability
    DayAvailability,
    AvailabilityCalendar,
    AvailabilityCheckResponse,
    BlockDatesRequest,
    UnblockDatesRequest,
    BlockedDateResponse,
    BookedDateResponse,
    # Dashboards
    KPITrends,
    AdminKPIs,
    DealerStats,
)
from api.models.catalog import (
    BrandType,
    MakeType,
    MarketPresence,
    BrandCreate,
    BrandUpdate,
    BrandResponse,
    MakeCreate,
    MakeUpdate,
    MakeResponse,
    MakeListResponse,
    HighlightResponse,
    MakeImageResponse,
    MakeImageUpdate,
    CatalogImportResult,
)
from api.models.motorcycle import (
    MotorcycleImage,
    MotorcycleFormData,
    MotorcycleUpdate,
    MotorcycleResponse,
    MotorcycleFilters,
    MotorcyclePage,
    PrimaryImageRequest,
)
from api.models.user import (
    UserRole,
    AccessAction,
    RegisterRequest,
    ProfileUpdate,
    AdminUserUpdate,
    UserResponse,
    UserListResponse,
    AccessLogResponse,
    LoginRequest,
    LoginResponse,
)

__all__ = [
    # Booking
    "BookingStatus",
    "BookingFormData",
    "BookingStatusUpdate",
    "CancelBookingRequest",
    "BookingResponse",
    "BookingWithDetails",
    # Availability
    "DayAvailability",
    "AvailabilityCalendar",
    "AvailabilityCheckResponse",
    "BlockDatesRequest",
    "UnblockDatesRequest",
    "BlockedDateResponse",
    "BookedDateResponse",
    # Dashboards
    "KPITrends",
    "AdminKPIs",
    "DealerStats",
    # Catalog
    "BrandType",
    "MakeType",
    "MarketPresence",
    "BrandCreate",
    "BrandUpdate",
    "BrandResponse",
    "MakeCreate",
    "MakeUpdate",
    "MakeResponse",
    "MakeListResponse",
    "HighlightResponse",
    "MakeImageResponse",
    "MakeImageUpdate",
    "CatalogImportResult",
    # Motorcycles
    "MotorcycleImage",
    "MotorcycleFormData",
    "MotorcycleUpdate",
    "MotorcycleResponse",
    "MotorcycleFilters",
    "MotorcyclePage",
    "PrimaryImageRequest",
    # Users
    "UserRole",
    "AccessAction",
    "RegisterRequest",
    "ProfileUpdate",
    "AdminUserUpdate",
    "UserResponse",
    "UserListResponse",
    "AccessLogResponse",
    "LoginRequest",
    "LoginResponse",
]
