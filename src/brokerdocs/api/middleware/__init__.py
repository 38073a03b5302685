"""brokerdocs API middleware package."""

from brokerdocs.api.middleware.request_id import RequestIdMiddleware, resolve_request_id

__all__ = ["RequestIdMiddleware", "resolve_request_id"]
