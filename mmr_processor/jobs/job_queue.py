#!/usr/bin/env python3
"""
Job queue - in-process priority queue drained by a bounded pool of worker threads.
Smaller files are dequeued first; jobs returned to pending by the tracker are
re-enqueued after an exponential backoff delay.
"""

import itertools
import logging
import queue
import threading
from typing import Callable, Dict, List, Optional

from mmr_processor.models.config_models import QueueConfig
from mmr_processor.models.job_models import JobMetadata, JobStatus, MMRJobData

MB = 1024 * 1024

JobHandler = Callable[[MMRJobData], Optional[JobMetadata]]


def calculate_priority(file_size: int) -> int:
    """Priority tier by size; lower numbers are dequeued first"""
    if file_size < MB:
        return 1
    if file_size < 5 * MB:
        return 2
    if file_size < 10 * MB:
        return 3
    return 4


class JobQueue:
    """Priority queue with a fixed-size worker pool and retry backoff"""

    def __init__(self, handler: JobHandler, config: Optional[QueueConfig] = None):
        self.handler = handler
        self.config = config or QueueConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

        self._queue: "queue.PriorityQueue" = queue.PriorityQueue()
        self._sequence = itertools.count()
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._timers: Dict[str, threading.Timer] = {}
        self._outstanding = 0
        self._idle = threading.Condition()

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    @property
    def outstanding(self) -> int:
        """Jobs queued, running or waiting for a retry"""
        with self._idle:
            return self._outstanding

    @property
    def pending_retries(self) -> int:
        with self._idle:
            return len(self._timers)

    def add_job(self, data: MMRJobData) -> int:
        """Enqueue one job and return its priority tier"""
        priority = calculate_priority(data.file_size)
        with self._idle:
            self._outstanding += 1
        self._put(priority, data)
        self.logger.info(f"Job {data.job_id} added to queue (priority {priority})")
        return priority

    def add_batch_jobs(self, jobs: List[MMRJobData]) -> List[int]:
        return [self.add_job(data) for data in jobs]

    def start(self) -> None:
        """Start the worker threads"""
        if self.is_running:
            return
        self._stop_event.clear()
        self._threads = [
            threading.Thread(target=self._worker_loop, name=f"mmr-worker-{index}", daemon=True)
            for index in range(self.config.concurrency)
        ]
        for thread in self._threads:
            thread.start()
        self.logger.info(f"Job queue started with {self.config.concurrency} workers")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop accepting work and wait for running jobs to finish"""
        self._stop_event.set()
        with self._idle:
            timers = list(self._timers.values())
            self._timers.clear()
            self._outstanding -= len(timers)
            self._idle.notify_all()
        for timer in timers:
            timer.cancel()
        if timers:
            self.logger.info(f"Dropped {len(timers)} pending retries")
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        self.logger.info("Job queue stopped")

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is queued, running or awaiting retry"""
        with self._idle:
            return self._idle.wait_for(lambda: self._outstanding == 0, timeout)

    def _put(self, priority: int, data: MMRJobData) -> None:
        self._queue.put((priority, next(self._sequence), data))

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                priority, _, data = self._queue.get(timeout=self.config.poll_interval)
            except queue.Empty:
                continue
            try:
                self._run(priority, data)
            finally:
                self._queue.task_done()

    def _run(self, priority: int, data: MMRJobData) -> None:
        job = None
        try:
            job = self.handler(data)
        except Exception as e:
            self.logger.error(f"Unhandled error in job {data.job_id}: {e}", exc_info=True)

        with self._idle:
            # stop() sets the event before taking the lock, so no timer is registered after it
            if job is not None and job.status == JobStatus.PENDING and not self._stop_event.is_set():
                delay = self.config.backoff_delay * (2 ** (job.retry_count - 1))
                self.logger.info(f"Re-enqueueing job {data.job_id} in {delay:.1f}s (retry {job.retry_count})")
                timer = threading.Timer(delay, self._retry, args=(priority, data))
                timer.daemon = True
                self._timers[data.job_id] = timer
                timer.start()
                return
            self._outstanding -= 1
            self._idle.notify_all()

    def _retry(self, priority: int, data: MMRJobData) -> None:
        # A timer already removed by stop() has been counted out of _outstanding
        with self._idle:
            if self._timers.pop(data.job_id, None) is None:
                return
        self._put(priority, data)
