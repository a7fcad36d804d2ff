#!/usr/bin/env python3
"""
MMR worker - runs one queued job through the parse pipeline.
Claims the job, reads the payload, parses with a progress callback that records
progress, honours cancellation between sheets and enforces the wall-clock budget.
"""

import logging
import time
from typing import Callable, Optional

from mmr_processor.exceptions import JobCancelledError, JobNotFoundError, JobTimeoutError, MMRProcessorError
from mmr_processor.models.config_models import QueueConfig
from mmr_processor.models.job_models import JobMetadata, MMRJobData, MMRJobResult
from mmr_processor.jobs.job_tracker import JobTracker
from mmr_processor.processors.mmr_processor import MMRProcessor


class MMRWorker:
    """Processes MMR jobs pulled from the job queue"""

    def __init__(self, tracker: JobTracker, processor: MMRProcessor,
                 config: Optional[QueueConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.tracker = tracker
        self.processor = processor
        self.config = config or QueueConfig()
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    def process_job(self, data: MMRJobData) -> Optional[JobMetadata]:
        """Run one job; returns the job record after its final transition"""
        job_id = data.job_id
        try:
            job = self.tracker.mark_processing(job_id)
        except JobNotFoundError:
            self.logger.info(f"Job {job_id} was deleted before it started")
            return None
        if job is None:
            return self.tracker.store.get(job_id)

        started = self.clock()
        self.logger.info(f"Processing job {job_id}: {data.file_name} (attempt {job.retry_count + 1})")

        def on_progress(current: int, total: int, message: str) -> None:
            self._checkpoint(job_id, started)
            self.tracker.update_progress(job_id, current, total, message)

        try:
            content = self._read_payload(data)
            parse_result = self.processor.parse_file(content, file_name=data.file_name,
                                                     uploaded_at=job.created_at,
                                                     progress_callback=on_progress)
            self._checkpoint(job_id, started)

            result = MMRJobResult(
                job_id=job_id,
                upload_id=data.upload_id,
                parse_result=parse_result,
                sheet_count=len(parse_result.sheets),
                sheet_names=[sheet.name for sheet in parse_result.sheets],
                processing_time=round(self.clock() - started, 3),
            )
            return self.tracker.complete_job(job_id, result)

        except JobCancelledError:
            self.logger.info(f"Job {job_id} cancelled or deleted while running, result discarded")
            return self.tracker.store.get(job_id)
        except Exception as e:
            self.logger.error(f"Job {job_id} failed: {e}", exc_info=True)
            return self.tracker.fail_job(job_id, str(e))

    def _checkpoint(self, job_id: str, started: float) -> None:
        """Cooperative cancellation and timeout check"""
        if self.tracker.is_cancelled(job_id):
            raise JobCancelledError(f"Job {job_id} was cancelled")
        elapsed = self.clock() - started
        if elapsed > self.config.job_timeout:
            raise JobTimeoutError(f"Job {job_id} exceeded {self.config.job_timeout:.0f}s (ran {elapsed:.1f}s)")

    def _read_payload(self, data: MMRJobData) -> bytes:
        if data.content is not None:
            return data.content
        if data.file_path:
            with open(data.file_path, 'rb') as f:
                return f.read()
        raise MMRProcessorError(f"Job {data.job_id} has neither file content nor a file path")
