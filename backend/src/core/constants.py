"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_TITLE_LENGTH = 255
MAX_NOTES_LENGTH = 2000  # Appointment notes limit shared by the editor and the API

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
# Note: production URLs should be added via FRONTEND_URL environment variable
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # Vite dev server - localhost
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Planner grid
SLOT_MINUTES = 15  # Snapping granularity and minimum appointment duration
DEFAULT_APPOINTMENT_MINUTES = 60  # Duration used for click-to-create
PIXELS_PER_MINUTE = 2  # Vertical scale of the day grid

# Board window bounds, in minutes from local midnight
FALLBACK_WINDOW_START_MINUTES = 8 * 60   # 08:00
FALLBACK_WINDOW_END_MINUTES = 18 * 60    # 18:00
MIN_WINDOW_START_MINUTES = 6 * 60        # 06:00
MAX_WINDOW_END_MINUTES = 20 * 60         # 20:00

# Optimistic records carry this prefix until the server assigns a real id
TEMPORARY_ID_PREFIX = "temp-"

# Lane key for appointments without a technician
UNASSIGNED_LANE_ID = "unassigned"

# Fallback lane colors when a technician has no linked resource color
TECHNICIAN_COLORS = ["#0f172a", "#7c3aed", "#0f766e", "#1d4ed8", "#b45309", "#be123c"]

# Technician/bay directories change rarely; refetch at most every 5 minutes
DIRECTORY_CACHE_SECONDS = 5 * 60

# Header carrying the organization scope of every planner request
ORGANIZATION_HEADER = "X-Organization-Id"
