from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cloudpulse.schemas.common import HealthState
from cloudpulse.services.health_probe import ProbeResult

PROVIDER_ACTIVE = "active"

NO_SIGNAL_MESSAGE = "No endpoint or Vultr status available"


@dataclass(frozen=True)
class Classification:
    state: HealthState
    error_message: Optional[str] = None


@dataclass(frozen=True)
class LatencyThresholds:
    healthy_ms: int = 1000
    degraded_ms: int = 3000


# PUBLIC_INTERFACE
def classify(
    probe: Optional[ProbeResult],
    provider_status: Optional[str],
    has_endpoint: bool,
    thresholds: LatencyThresholds = LatencyThresholds(),
) -> Classification:
    """
    Combine an HTTP probe result and the provider's own status into one HealthState.

    First matching rule wins:
      1. no endpoint, no provider status -> unknown
      2. no endpoint -> healthy iff provider status is 'active', else unhealthy
      3. probe failed -> unhealthy with the probe error
      4. latency < healthy_ms and provider status absent or 'active' -> healthy
      5. latency < degraded_ms -> degraded ("High latency")
      6. otherwise -> degraded ("Very high latency")
    """
    if not has_endpoint or probe is None:
        if not provider_status:
            return Classification(HealthState.unknown, NO_SIGNAL_MESSAGE)
        if provider_status == PROVIDER_ACTIVE:
            return Classification(HealthState.healthy)
        return Classification(HealthState.unhealthy)

    if not probe.success:
        return Classification(HealthState.unhealthy, probe.error)

    latency = probe.latency_ms
    if latency < thresholds.healthy_ms and (not provider_status or provider_status == PROVIDER_ACTIVE):
        return Classification(HealthState.healthy)
    if latency < thresholds.degraded_ms:
        return Classification(HealthState.degraded, f"High latency: {latency}ms")
    return Classification(HealthState.degraded, f"Very high latency: {latency}ms")
