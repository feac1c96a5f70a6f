"""Aggregate application use cases."""

from .notifications import compose_notifications

__all__ = ["compose_notifications"]
