from datetime import datetime

from apscheduler.jobstores.base import ConflictingIdError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.settings import settings
from app.db.session import AsyncSessionLocal
from app.services.admin.live_class import LiveClassService
from app.services.shares.auth import purge_expired_tokens
from app.services.shares.content_store import ContentStore

scheduler = AsyncIOScheduler()


# ================================
# JOB 1: Live class lifecycle
# ================================
async def live_class_sync_job(factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
    async with factory() as session:
        service = LiveClassService(session, ContentStore())
        try:
            result = await service.sync_lifecycle_async()
            logger.debug(f"✔ Live class sync: {result}")
            return result
        except Exception as e:
            logger.exception(f"❌ Live class sync job error: {e}")


# ================================
# JOB 2: Expired token purge
# ================================
async def token_purge_job(factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
    async with factory() as session:
        try:
            result = await purge_expired_tokens(session)
            logger.info(f"🧹 Token purge: {result}")
            return result
        except Exception as e:
            logger.exception(f"❌ Token purge job error: {e}")


# ================================
# START ALL JOBS
# ================================
def start_scheduler():
    now = datetime.now()

    try:
        scheduler.add_job(
            live_class_sync_job,
            trigger=IntervalTrigger(minutes=settings.LIVE_CLASS_SYNC_INTERVAL_MINUTES),
            next_run_time=now,
            id="live_class_sync_job",
            replace_existing=True,
            max_instances=1,
        )
    except ConflictingIdError:
        logger.warning("⚠ live_class_sync_job existed")

    try:
        scheduler.add_job(
            token_purge_job,
            trigger=IntervalTrigger(minutes=settings.TOKEN_PURGE_INTERVAL_MINUTES),
            id="token_purge_job",
            replace_existing=True,
            max_instances=1,
        )
    except ConflictingIdError:
        logger.warning("⚠ token_purge_job existed")

    scheduler.start()
    logger.info("🔔 Scheduler started (live class sync + token purge)")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler stopped")
