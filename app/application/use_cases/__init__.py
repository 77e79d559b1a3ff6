"""Aggregate application use cases."""

from .notifications import (
    get_or_create_preferences,
    route_notification,
    should_notify,
    track_delivery,
)

__all__ = [
    "get_or_create_preferences",
    "route_notification",
    "should_notify",
    "track_delivery",
]
