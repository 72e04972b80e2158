"""
Moderation worker
Polls pending reports and applies the automatic moderation rules.

Run with: python -m civicreport.crowdsource.worker

Only one worker should run against a database at a time: pending reports
are read without row claiming, so two workers could moderate the same batch.
"""

import logging
import signal
import threading
from typing import Optional

from civicreport.core.config import Settings, settings as default_settings
from civicreport.crowdsource.moderation import ModerationSummary, moderate_pending_reports
from civicreport.database.connection import DatabaseConnection, get_db

logger = logging.getLogger(__name__)


class ModerationWorker:
    """
    Poll-sleep loop with an explicit stop signal.

    Each cycle runs in its own transaction. Failures are logged and the
    batch is retried on the next tick since statuses did not change.
    """

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        settings: Optional[Settings] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        settings = settings or default_settings
        self.db = db or get_db()
        self.poll_interval = settings.moderation_poll_seconds
        self.batch_size = settings.moderation_batch_size
        self.stop_event = stop_event or threading.Event()
        self.cycles = 0

    def run_once(self) -> ModerationSummary:
        """Moderate one batch and commit it."""
        with self.db.session_scope() as session:
            summary = moderate_pending_reports(session, batch_size=self.batch_size)

        if summary.processed:
            logger.info(
                f"Moderation cycle: {summary.processed} processed, "
                f"{summary.approved} approved, {summary.needs_review} need review"
            )
        return summary

    def run(self) -> None:
        """Loop until ``stop()`` is called or the stop event is set."""
        logger.info(
            f"Moderation worker started (interval={self.poll_interval}s, batch={self.batch_size})"
        )
        while not self.stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Error processing moderation queue")
            self.cycles += 1
            self.stop_event.wait(self.poll_interval)
        logger.info("Moderation worker stopped")

    def stop(self) -> None:
        self.stop_event.set()

    def start_in_thread(self) -> threading.Thread:
        """Run the loop on a daemon thread and return it."""
        thread = threading.Thread(target=self.run, name="moderation-worker", daemon=True)
        thread.start()
        return thread


def main() -> None:
    from civicreport.core.logging import setup_logging

    setup_logging(component="worker")
    worker = ModerationWorker()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        worker.run()
    finally:
        worker.db.close()


if __name__ == "__main__":
    main()
