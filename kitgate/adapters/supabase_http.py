"""Shared async HTTP client for the backend-as-a-service REST surfaces.

Both the record store (PostgREST under ``/rest/v1``) and the blob store
(``/storage/v1``) authenticate with the same service key and share one
connection pool. Transport failures, timeouts and error statuses are mapped to
``StoreAppError`` here so adapters never leak ``httpx`` exceptions upward.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from kitgate.core.errors import StoreAppError

logger = logging.getLogger(__name__)


class SupabaseHttpClient:
    """Thin wrapper over ``httpx.AsyncClient`` bound to one backend project."""

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the pooled client.

        Args:
            base_url: Project URL (e.g., https://xyz.supabase.co).
            service_key: Service key sent as ``apikey`` and bearer token.
            timeout_seconds: Bound on every round-trip.
            transport: Optional transport override (tests use ``httpx.MockTransport``).
        """
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            },
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        operation: str,
    ) -> httpx.Response:
        """Send a request and return the response when its status is < 400.

        Args:
            method: HTTP method.
            path: Path relative to the project URL.
            params: Query parameters (mapping or list of pairs for repeated keys).
            json: JSON body.
            headers: Extra headers (e.g., PostgREST ``Prefer``).
            operation: Short name used in logs and error details.

        Raises:
            StoreAppError: On timeout, transport failure or an error status.
        """
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as exc:
            logger.error(
                "store.timeout",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StoreAppError(
                code="store_timeout",
                message="The data store did not respond in time",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "store.unavailable",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StoreAppError(
                code="store_unavailable",
                message="The data store could not be reached",
            ) from exc

        if response.status_code >= 400:
            logger.error(
                "store.error_status",
                extra={
                    "operation": operation,
                    "status_code": response.status_code,
                    "body_preview": response.text[:200],
                },
            )
            raise StoreAppError(
                code="store_error",
                message="The data store rejected the request",
                details={"http_status": response.status_code},
            )

        return response

    async def aclose(self) -> None:
        await self._client.aclose()
