"""Sentinel engine and store-backed services.

The health-check engine is split across:
- instances_service.py (instance directory + registration)
- provider_client.py (Vultr status fetch)
- health_probe.py / health_classifier.py (active check + state decision)
- alert_lifecycle.py (metric, status and alert writes)
- notifier.py (best-effort critical notifications)
- sentinel.py (concurrent run orchestration) and sentinel_loop.py (periodic scheduling)
"""

# Import side-effects are intentionally avoided here; modules are imported by routers/services as needed.
