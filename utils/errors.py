from __future__ import annotations

from typing import Optional


class NotificationError(Exception):
    """Base class for failures raised by the notification core."""


class Unauthorized(NotificationError):
    pass


class ConfigurationError(NotificationError):
    pass


class TimezoneResolutionError(NotificationError):
    def __init__(self, tz_name: Optional[str], reason: str = ""):
        self.tz_name = tz_name
        super().__init__(f"cannot resolve timezone {tz_name!r}" + (f": {reason}" if reason else ""))


class DeliveryError(NotificationError):
    def __init__(
        self,
        message: str,
        *,
        target: Optional[str] = None,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.target = target
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(NotificationError):
    pass
