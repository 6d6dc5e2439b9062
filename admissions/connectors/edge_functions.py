"""Admissions Analytics — Edge Function Client.

Calls the hosted edge functions (geocoding, census) over HTTPS with
retry and rate-limit handling, and resolves their inconsistent response
envelopes in one place.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from admissions.config import settings
from admissions.core.logging import get_logger

logger = get_logger("connectors.edge_functions")

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds


class EdgeFunctionError(Exception):
    """Raised when an edge function call fails."""

    def __init__(self, message: str, function_name: str = "", status_code: int = 0):
        self.function_name = function_name
        self.status_code = status_code
        super().__init__(message)


def extract_rows(payload: Any) -> List[Dict[str, Any]]:
    """Resolve an RPC response envelope to a list of row dicts.

    Accepted shapes: a bare list, ``{"rows": [...]}``, ``{"result": [...]}``,
    or a single object which becomes a one-row list. Anything else is empty.
    """
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        if isinstance(payload.get("rows"), list):
            return extract_rows(payload["rows"])
        if isinstance(payload.get("result"), list):
            return extract_rows(payload["result"])
        return [payload]
    return []


def _error_message(error: httpx.HTTPStatusError) -> str:
    """Prefer the function's own ``error`` field over the generic status text."""
    if not error.response.headers.get("content-type", "").startswith("application/json"):
        return str(error)
    try:
        body = error.response.json()
    except ValueError:
        return str(error)
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return str(error)


class EdgeFunctionClient:
    """Async HTTP client for the hosted edge functions."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        self.base_url = (base_url or settings.edge_functions_base).rstrip("/")
        self.service_key = service_key or settings.supabase_service_key
        self.retry_base_delay = retry_base_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.edge_function_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.service_key:
            headers["Authorization"] = f"Bearer {self.service_key}"
            headers["apikey"] = self.service_key
        return headers

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.retry_base_delay * (2 ** (attempt - 1)))

    # ── Core Request Method ──

    async def invoke(self, name: str, body: Dict[str, Any]) -> Any:
        """POST a JSON body to an edge function and return its decoded JSON."""
        url = f"{self.base_url}/{name}"
        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.post(url, json=body, headers=self._headers())

                # Rate limited
                if resp.status_code == 429 and attempt < MAX_RETRIES:
                    logger.warning(
                        f"Rate limited by '{name}' (429). Retrying "
                        f"(attempt {attempt}/{MAX_RETRIES})"
                    )
                    await self._backoff(attempt)
                    continue

                resp.raise_for_status()
                return resp.json()

            except httpx.HTTPStatusError as e:
                if attempt < MAX_RETRIES and e.response.status_code >= 500:
                    logger.warning(
                        f"Edge function '{name}' returned {e.response.status_code}. Retrying"
                    )
                    await self._backoff(attempt)
                    continue

                raise EdgeFunctionError(
                    _error_message(e), name, e.response.status_code
                ) from e

            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    logger.warning(f"Request error calling '{name}': {e}. Retrying")
                    await self._backoff(attempt)
                    continue
                raise EdgeFunctionError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}", name
                ) from e

            except ValueError as e:
                raise EdgeFunctionError(
                    f"Edge function '{name}' returned invalid JSON", name
                ) from e

        raise EdgeFunctionError("Max retries exhausted", name)

    async def invoke_rows(self, name: str, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Invoke an edge function that returns tabular data."""
        rows = extract_rows(await self.invoke(name, body))
        logger.info(f"Fetched {len(rows)} rows from '{name}'", extra={"row_count": len(rows)})
        return rows
