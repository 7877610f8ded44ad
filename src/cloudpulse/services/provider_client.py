from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from cloudpulse.schemas.common import Outcome

logger = logging.getLogger(__name__)


class VultrClient:
    """
    Reads instance status from the Vultr compute API (GET /instances).

    The API key is optional: without it the client reports no provider status at all,
    which the classifier treats the same as an unavailable provider.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.vultr.com/v2",
        timeout_sec: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = float(timeout_sec)
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    # PUBLIC_INTERFACE
    async def fetch_instance_statuses(self) -> Outcome[Dict[str, str]]:
        """Return {instance_id: status} for every provider instance; soft-fails to an empty map."""
        if not self.enabled:
            logger.warning("VULTR_API_KEY not configured, skipping Vultr API fetch")
            return Outcome.success({})

        try:
            body = await asyncio.wait_for(self._get_instances(), self.timeout_sec)
            statuses = _parse_statuses(body)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.error("Vultr instances fetch timed out after %ss", self.timeout_sec)
            return Outcome.soft_error({}, "Vultr API timeout")
        except Exception as exc:
            logger.exception("Failed to fetch Vultr instances")
            return Outcome.soft_error({}, f"Vultr API error: {exc}")

        logger.info("Fetched %s Vultr instances", len(statuses))
        return Outcome.success(statuses)

    async def _get_instances(self) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_sec,
            transport=self._transport,
        ) as client:
            res = await client.get(
                "/instances",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
            res.raise_for_status()
            return res.json()


def _parse_statuses(body: Any) -> Dict[str, str]:
    if not isinstance(body, dict):
        raise ValueError(f"unexpected response body of type {type(body).__name__}")
    instances = body.get("instances") or []
    if not isinstance(instances, list):
        raise ValueError("'instances' is not a list")

    statuses: Dict[str, str] = {}
    for inst in instances:
        if not isinstance(inst, dict):
            continue
        iid = inst.get("id")
        if iid:
            statuses[str(iid)] = str(inst.get("status") or "")
    return statuses
