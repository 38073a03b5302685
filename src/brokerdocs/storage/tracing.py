"""OpenTelemetry tracing for object-store gateway primitives.

Security:
    - Never export raw object keys or prefixes (owner ids are business data);
      only their SHA256 is attached for correlation
    - No credentials, bucket endpoints or presigned URLs in any span attribute
"""

from __future__ import annotations

import functools
import hashlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from brokerdocs.observability.tracing import TracingSettings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def _is_otel_enabled() -> bool:
    return TracingSettings.from_env().enabled


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace async gateway primitives with OpenTelemetry.

    The first positional argument of the decorated method (a key or a prefix)
    is hashed before being attached to the span.

    Args:
        operation: Operation name (e.g., "put", "get", "list_page", "copy").

    Returns:
        Decorated coroutine function that emits spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, target: Any, *args: Any, **kwargs: Any) -> Any:
            if not _is_otel_enabled():
                return await func(self, target, *args, **kwargs)

            tracer = trace.get_tracer("brokerdocs.object_store")
            span_name = f"brokerdocs.object_store.{operation}"

            with tracer.start_as_current_span(span_name) as span:
                if isinstance(target, str):
                    span.set_attribute("brokerdocs.object_target_sha256", _sha256(target))
                else:
                    span.set_attribute("brokerdocs.batch_size", len(target))
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                try:
                    result = await func(self, target, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                if result is not None:
                    _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add result-based attributes to span safely.

    Only sizes and counts are recorded; never URLs or content.
    """
    try:
        from brokerdocs.storage.models import ListPage, ObjectInfo

        if isinstance(result, bytes):
            span.set_attribute("brokerdocs.object_size_bytes", len(result))
        elif isinstance(result, ObjectInfo):
            span.set_attribute("brokerdocs.object_size_bytes", result.size_bytes)
            span.set_attribute("brokerdocs.object_content_type", result.content_type)
        elif isinstance(result, ListPage):
            span.set_attribute("brokerdocs.list_key_count", len(result.keys))
            span.set_attribute("brokerdocs.list_truncated", result.next_token is not None)
        elif operation == "delete_many" and isinstance(result, list):
            span.set_attribute("brokerdocs.deleted_key_count", len(result))

    except Exception as e:
        logger.debug("Failed to add result attributes to span: %s", e)
