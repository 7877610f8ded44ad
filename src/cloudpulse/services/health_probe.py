from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one HTTP health probe; latency is measured even on failure."""

    success: bool
    latency_ms: int
    status_code: Optional[int] = None
    error: Optional[str] = None


def is_probeable(endpoint: Optional[str]) -> bool:
    """Only http(s) endpoints are actively probed."""
    return bool(endpoint) and str(endpoint).startswith("http")


def _elapsed_ms(started: float) -> int:
    return int(round((time.monotonic() - started) * 1000))


class HealthProbe:
    """
    Active HTTP GET check against an instance endpoint.

    Responses below 500 complete the probe; 4xx is reported as a failed check with
    `HTTP <code>`. Redirects are followed up to `max_redirects` hops. `timeout_ms`
    bounds the whole request, body included.
    """

    def __init__(
        self,
        timeout_ms: int = 5000,
        max_redirects: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_ms = int(timeout_ms)
        self.max_redirects = int(max_redirects)
        self._transport = transport

    # PUBLIC_INTERFACE
    async def probe(self, endpoint: str) -> ProbeResult:
        """GET the endpoint and report success, latency and status code."""
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_ms / 1000.0,
                follow_redirects=True,
                max_redirects=self.max_redirects,
                transport=self._transport,
            ) as client:
                # httpx timeouts are per connect/read; the deadline covers the whole request.
                res = await asyncio.wait_for(client.get(endpoint), self.timeout_ms / 1000.0)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            return ProbeResult(success=False, latency_ms=_elapsed_ms(started), error="Connection timeout")
        except httpx.HTTPError as exc:
            return ProbeResult(success=False, latency_ms=_elapsed_ms(started), error=str(exc) or type(exc).__name__)

        latency_ms = _elapsed_ms(started)
        code = res.status_code
        if code >= 500:
            return ProbeResult(
                success=False,
                latency_ms=latency_ms,
                status_code=code,
                error=f"Request failed with status code {code}",
            )
        if code >= 400:
            return ProbeResult(success=False, latency_ms=latency_ms, status_code=code, error=f"HTTP {code}")
        return ProbeResult(success=True, latency_ms=latency_ms, status_code=code)
