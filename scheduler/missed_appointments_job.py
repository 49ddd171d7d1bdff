"""
Recurring missed-appointments sweep.

One APScheduler ``BackgroundScheduler`` per process, started by
``create_app`` and shut down at interpreter exit. Each tick runs inside an
application context; a failing tick is logged and the next tick retries.
"""
import atexit
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from models import db
from services.missed_sweeper import sweep_missed_appointments

logger = logging.getLogger(__name__)

MISSED_SWEEP_JOB_ID = "missed_appointments_sweep"

_scheduler = None
_lock = threading.Lock()


def run_missed_appointments_job(app) -> int:
    with app.app_context():
        try:
            count = sweep_missed_appointments()
            logger.info("Missed appointments sweep done: %s marked", count)
            return count
        except Exception as e:
            db.session.rollback()
            logger.warning("Missed appointments sweep failed: %s", e, exc_info=True)
            return 0


def start_missed_appointments_scheduler(app):
    global _scheduler
    with _lock:
        if _scheduler is not None:
            return _scheduler

        minutes = app.config.get("MISSED_SWEEP_INTERVAL_MINUTES", 30)
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            run_missed_appointments_job,
            "interval",
            minutes=minutes,
            args=[app],
            id=MISSED_SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        atexit.register(stop_missed_appointments_scheduler)
        _scheduler = scheduler

    logger.info("Missed appointments sweep scheduled every %s minutes", minutes)
    return scheduler


def stop_missed_appointments_scheduler():
    global _scheduler
    with _lock:
        if _scheduler is None:
            return
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
        _scheduler = None
