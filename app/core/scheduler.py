import logging
import os
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.exam_attempt import exam_attempt_service

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def sweep_expired_attempts():
    db = SessionLocal()
    try:
        result = exam_attempt_service.sweep_expired_attempts(db)
        logger.info(f"Attempt sweep finished: {result.auto_submitted} auto-submitted, {result.abandoned} abandoned")
    except Exception as e:
        logger.error(f"Error sweeping expired attempts: {e}", exc_info=True)
    finally:
        db.close()


def start_scheduler():
    if os.getenv("TESTING") == "true":
        logger.info("Scheduler disabled in test environment")
        return

    if not scheduler.running:
        scheduler.add_job(
            sweep_expired_attempts,
            'interval',
            minutes=settings.SWEEP_INTERVAL_MINUTES,
            id='sweep_expired_attempts',
            name='Auto-submit and abandon expired attempts',
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        scheduler.start()
        logger.info(f"Scheduler started with attempt sweep every {settings.SWEEP_INTERVAL_MINUTES} minute(s)")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
