"""One notification run, for an external scheduler.

    */30 20-21 * * *  python cron_runner.py
"""
import asyncio
import sys
import uuid

import structlog

from models import db, client, init_models
from segmentation.errors import ConfigurationError
from segmentation.orchestrator import build_orchestrator, run_orchestration
from utils.log import setup_logging

logger = structlog.get_logger()


async def main() -> int:
    setup_logging()
    try:
        orchestrator = build_orchestrator()
    except ConfigurationError as exc:
        logger.error("cron.config_error", error=str(exc))
        return 2

    await init_models(db)
    structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex, trigger="cron")
    try:
        report = await run_orchestration(orchestrator=orchestrator)
    finally:
        aclose = getattr(orchestrator.dispatcher, "aclose", None)
        if aclose is not None:
            await aclose()
        client.close()

    logger.info(
        "cron.done",
        skipped=report.skipped,
        active_countries=report.active_countries,
        total_notifications=report.total_notifications,
        unique_users=report.unique_users_notified,
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
