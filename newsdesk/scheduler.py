from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import logging
import threading
from typing import List, Optional

import schedule

from .desk import NewsDesk

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Fires an independent refresh trigger per topic every ``interval_minutes``.

    Triggers are handed to a thread pool so a slow topic never delays the
    others. Overlapping triggers for one topic are dropped by the orchestrator.
    """

    def __init__(self, desk: NewsDesk, interval_minutes: int = 60, poll_seconds: float = 5) -> None:
        self.desk = desk
        self.interval_minutes = max(1, interval_minutes)
        self.poll_seconds = poll_seconds
        self._scheduler = schedule.Scheduler()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, len(desk.topics)), thread_name_prefix="refresh"
        )
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        for topic in desk.topics:
            self._scheduler.every(self.interval_minutes).minutes.do(self.trigger, topic)

    def trigger(self, topic: str) -> Future:
        future = self._executor.submit(self.desk.refresh, topic)
        future.add_done_callback(lambda f, t=topic: self._log_outcome(t, f))
        return future

    def trigger_all(self) -> List[Future]:
        return [self.trigger(topic) for topic in self.desk.topics]

    def _log_outcome(self, topic: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Scheduled refresh for %s failed: %s", topic, exc)
            return
        report = future.result()
        logger.info("Scheduled refresh for %s: %s (%d new)", topic, report.status, report.added)

    def run_pending(self) -> None:
        self._scheduler.run_pending()

    def start(self, run_now: bool = True) -> None:
        if self._thread is not None:
            return
        if run_now:
            self.trigger_all()
        self._thread = threading.Thread(target=self._loop, name="refresh-scheduler", daemon=True)
        self._thread.start()
        logger.info(
            "Refreshing %d topics every %d minutes.", len(self.desk.topics), self.interval_minutes
        )

    def _loop(self) -> None:
        while not self._stop.is_set():
            self._scheduler.run_pending()
            self._stop.wait(self.poll_seconds)

    def stop(self, wait: bool = True) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_seconds * 2)
            self._thread = None
        self._scheduler.clear()
        self._executor.shutdown(wait=wait)
