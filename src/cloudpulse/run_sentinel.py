"""
One-shot sentinel run for cron / scheduled-task invocation.

Usage:
    cloudpulse-sentinel [--log-level INFO]

Prints the RunResult as JSON. Exits 0 when the run completes (even if instances
are unhealthy) and 1 when the run itself fails.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from cloudpulse.config import load_config
from cloudpulse.schemas.sentinel import RunResult
from cloudpulse.state import build_sentinel, build_store

logger = logging.getLogger("cloudpulse.run_sentinel")


async def _run() -> RunResult:
    config = load_config()
    store, mongo = build_store(config)
    try:
        return await build_sentinel(config, store).run()
    finally:
        if mongo is not None:
            mongo.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run one CloudPulse sentinel health-check pass.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    try:
        result = asyncio.run(_run())
    except Exception:
        logger.exception("Sentinel run failed")
        return 1

    print(json.dumps(result.model_dump(by_alias=True), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
