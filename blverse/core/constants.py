"""Application-wide constants."""

BRAND_NAME = "BLverse"

API_TITLE = f"{BRAND_NAME} Realtime API"
API_DESCRIPTION = (
    f"Direct messaging, realtime delivery, engagement counters and notifications for {BRAND_NAME}"
)
API_VERSION = "1.0.0"
