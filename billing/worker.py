"""ARQ worker: runs the autopay pass on a schedule outside the API process."""

import logging

from arq import cron
from arq.connections import RedisSettings

from billing.config import get_settings
from billing.constants import ARQ_JOB_TIMEOUT, ARQ_MAX_JOBS, AUTOPAY_CRON_MINUTES

logger = logging.getLogger(__name__)


async def charge_subscription_job(ctx: dict, subscription_id: str) -> None:
    """ARQ job: charge one due subscription without waiting for the cron.

    Raises InvalidTransitionError when the subscription is not active, due and
    backed by a mandate.
    """
    from billing.db.session import async_session_factory
    from billing.services.autopay_service import charge_subscription_by_id
    from billing.services.gateway import get_gateway

    async with async_session_factory() as db:
        await charge_subscription_by_id(db, subscription_id, get_gateway(), get_settings().currency)
        logger.info(f"Manual autopay charge complete for subscription {subscription_id}")


async def autopay_scheduler(ctx: dict) -> None:
    """Cron job: charge every subscription whose billing date has passed."""
    from billing.db.session import async_session_factory
    from billing.services.autopay_service import charge_due_subscriptions
    from billing.services.gateway import get_gateway

    report = await charge_due_subscriptions(async_session_factory, get_gateway())
    logger.info(
        f"Autopay cron: {len(report.charged)} charged, {len(report.skipped)} skipped, {len(report.failed)} failed"
    )


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [charge_subscription_job]
    cron_jobs = [cron(autopay_scheduler, minute=AUTOPAY_CRON_MINUTES)]

    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)

    max_jobs = ARQ_MAX_JOBS
    job_timeout = ARQ_JOB_TIMEOUT
