"""
Business-rule errors raised by services and rendered as JSON by the app error handler.

Services raise these instead of returning status codes so that the same rule
(ownership, plan limits, active subscription) reads identically in every module.
"""
from __future__ import annotations

from typing import Any


class ApiError(Exception):
    status_code = 400
    code: str | None = None

    def __init__(self, message: str, *, payload: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        if self.code:
            body: dict[str, Any] = {"error": self.code, "message": self.message}
        else:
            body = {"error": self.message}
        body.update(self.payload)
        return body


class BadRequest(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class UnauthorizedGym(Forbidden):
    code = "UNAUTHORIZED_GYM"


class SubscriptionInactive(Forbidden):
    code = "SUBSCRIPTION_EXPIRED"

    def __init__(self, message: str = "Subscription is expired or inactive"):
        super().__init__(message)


class LimitExceeded(Conflict):
    code = "LIMIT_EXCEEDED"

    def __init__(self, resource_type: str, current: int, maximum: int, location_id: int | None = None, message: str | None = None):
        super().__init__(
            message or f"{resource_type.capitalize()} limit reached (max {maximum})",
            payload={
                "resourceType": resource_type,
                "current": current,
                "max": maximum,
                "locationId": location_id,
            },
        )
        self.resource_type = resource_type
        self.current = current
        self.maximum = maximum
        self.location_id = location_id
