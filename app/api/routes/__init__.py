"""Route modules exposed by the API package."""

from . import assets, notifications, ping, tickets

__all__ = ["assets", "notifications", "ping", "tickets"]
