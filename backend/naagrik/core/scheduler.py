"""
Background scheduler for periodic tasks.

- Sweep orphaned comments: comments left behind by deleted issues.
  Runs every ORPHAN_SWEEP_INTERVAL_HOURS when ORPHAN_SWEEP_ENABLED is set.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from naagrik.core.config import settings
from naagrik.core.database import get_session_factory
from naagrik.core.errors import NaagrikError
from naagrik.services.comment_cleanup_service import comment_cleanup_service
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def sweep_orphaned_comments_job():
    """Background job removing comments whose issue no longer exists"""
    db = get_session_factory()()
    try:
        deleted = comment_cleanup_service.sweep_orphaned_comments(db)
        if deleted > 0:
            logger.info(f"Sweep job completed: Deleted {deleted} orphaned comments")
        else:
            logger.info("Sweep job completed: No orphaned comments found")
    except NaagrikError as e:
        # Already logged by the service; the next run tries again
        logger.error(f"Error in sweep_orphaned_comments_job: {e.message}")
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    Called when the FastAPI app starts. Does nothing unless the sweep is enabled.
    """
    if not settings.ORPHAN_SWEEP_ENABLED:
        logger.info("Orphaned comment sweep disabled")
        return

    if not scheduler.running:
        scheduler.add_job(
            sweep_orphaned_comments_job,
            trigger=IntervalTrigger(hours=settings.ORPHAN_SWEEP_INTERVAL_HOURS),
            id="sweep_orphaned_comments",
            name="Sweep orphaned comments",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            f"Background scheduler started. Sweep job scheduled every {settings.ORPHAN_SWEEP_INTERVAL_HOURS} hours.")


def stop_scheduler():
    """Stop the background scheduler when the FastAPI app shuts down"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
