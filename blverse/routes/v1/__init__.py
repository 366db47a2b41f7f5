"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import engagement, messages, notifications, realtime

__all__ = ["engagement", "messages", "notifications", "realtime"]
