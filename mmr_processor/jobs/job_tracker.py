#!/usr/bin/env python3
"""
Job tracker - lifecycle and ownership of asynchronous MMR jobs.
State machine: pending -> processing -> completed | failed | cancelled.
Terminal states are final. A failure with retry budget left returns the job to
pending with the retry counter incremented and progress reset.
"""

import logging
from datetime import datetime
from typing import List, Optional

from mmr_processor.exceptions import InvalidJobStateError, JobAccessDeniedError, JobNotFoundError
from mmr_processor.models.config_models import JobConfig
from mmr_processor.models.job_models import JobMetadata, JobProgress, JobStatus, MMRJobResult
from mmr_processor.jobs.job_store import JobStore

STATUS_SCAN_LIMIT = 1000


class JobTracker:
    """Tracks job records in an injected job store"""

    def __init__(self, store: JobStore, config: Optional[JobConfig] = None):
        self.store = store
        self.config = config or JobConfig()
        self.logger = logging.getLogger(self.__class__.__name__)
        self._last_purge: Optional[float] = None

    def create_job(self, job_id: str, user_id: str, file_name: str, file_size: int) -> JobMetadata:
        """Create a pending job owned by user_id"""
        self.purge_if_due()
        job = JobMetadata(
            job_id=job_id,
            user_id=user_id,
            file_name=file_name,
            file_size=file_size,
            status=JobStatus.PENDING,
            progress=JobProgress(current=0, total=100, percentage=0),
            created_at=datetime.now(),
            retry_count=0,
            max_retries=self.config.max_retries,
        )
        self.store.put(job)
        self.logger.info(f"Job {job_id} created for user {user_id} ({file_name}, {file_size} bytes)")
        return job

    def get_job(self, job_id: str) -> JobMetadata:
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_owned_job(self, job_id: str, user_id: str) -> JobMetadata:
        """Get a job, distinguishing a missing job from one owned by another user"""
        job = self.get_job(job_id)
        if job.user_id != user_id:
            raise JobAccessDeniedError(job_id, user_id)
        return job

    def is_cancelled(self, job_id: str) -> bool:
        job = self.store.get(job_id)
        return job is None or job.status == JobStatus.CANCELLED

    def mark_processing(self, job_id: str) -> Optional[JobMetadata]:
        """
        Claim a job for a worker. started_at is recorded on the first claim only.
        Returns None when the job is terminal and must not run.
        """
        def claim(job: JobMetadata) -> JobMetadata:
            if job.status.is_terminal:
                return job
            job.status = JobStatus.PROCESSING
            if job.started_at is None:
                job.started_at = datetime.now()
            return job

        job = self._update(job_id, claim)
        if job.status != JobStatus.PROCESSING:
            self.logger.info(f"Job {job_id} is {job.status.value}, not claiming")
            return None
        return job

    def update_progress(self, job_id: str, current: int, total: int,
                        message: Optional[str] = None) -> JobMetadata:
        """Record progress; updates on terminal jobs and regressions are ignored"""
        progress = JobProgress.of(current, total, message)

        def apply(job: JobMetadata) -> JobMetadata:
            if job.status.is_terminal or progress.percentage < job.progress.percentage:
                return job
            job.progress = progress
            return job

        return self._update(job_id, apply)

    def complete_job(self, job_id: str, result: MMRJobResult) -> JobMetadata:
        """processing -> completed; a late result for a cancelled job is dropped"""
        def complete(job: JobMetadata) -> JobMetadata:
            if job.status.is_terminal:
                return job
            job.status = JobStatus.COMPLETED
            job.completed_at = datetime.now()
            job.result = result
            job.progress = JobProgress.of(job.progress.total or 1, job.progress.total or 1, "Completed")
            return job

        job = self._update(job_id, complete)
        if job.status == JobStatus.COMPLETED and job.result is not None:
            self.logger.info(f"Job {job_id} completed")
        else:
            self.logger.info(f"Ignoring result for job {job_id} in state {job.status.value}")
        return job

    def fail_job(self, job_id: str, error: str) -> JobMetadata:
        """Record a failure; returns the job to pending while retries remain"""
        def fail(job: JobMetadata) -> JobMetadata:
            if job.status.is_terminal:
                return job
            job.error = error
            if job.can_retry:
                job.retry_count += 1
                job.status = JobStatus.PENDING
                job.progress = JobProgress(current=0, total=job.progress.total, percentage=0,
                                           message=f"Retry {job.retry_count} of {job.max_retries}")
            else:
                job.status = JobStatus.FAILED
                job.completed_at = datetime.now()
            return job

        job = self._update(job_id, fail)
        if job.status == JobStatus.PENDING:
            self.logger.warning(f"Job {job_id} failed, retry {job.retry_count}/{job.max_retries}: {error}")
        elif job.status == JobStatus.FAILED:
            self.logger.error(f"Job {job_id} failed permanently: {error}")
        return job

    def cancel_job(self, job_id: str) -> JobMetadata:
        """Cancel a job that has not reached a terminal state"""
        def cancel(job: JobMetadata) -> JobMetadata:
            if job.status.is_terminal:
                raise InvalidJobStateError(f"Job {job_id} is already {job.status.value}")
            job.status = JobStatus.CANCELLED
            job.completed_at = datetime.now()
            return job

        job = self._update(job_id, cancel)
        self.logger.info(f"Job {job_id} cancelled")
        return job

    def delete_job(self, job_id: str) -> None:
        """Remove the job record and its entry in the owner's index"""
        if not self.store.delete(job_id):
            raise JobNotFoundError(job_id)
        self.logger.info(f"Job {job_id} deleted")

    def get_user_jobs(self, user_id: str, limit: int = 50, offset: int = 0) -> List[JobMetadata]:
        """Jobs of a user, newest first"""
        jobs = []
        for job_id in self.store.list_user_job_ids(user_id, offset=offset, limit=limit):
            job = self.store.get(job_id)
            if job is not None:
                jobs.append(job)
        return jobs

    def get_jobs_by_status(self, user_id: str, status: JobStatus) -> List[JobMetadata]:
        return [job for job in self.get_user_jobs(user_id, limit=STATUS_SCAN_LIMIT) if job.status == status]

    def purge_if_due(self) -> int:
        """Sweep expired records from the store at most once per purge_interval"""
        now = self.store.clock()
        if self._last_purge is not None and now - self._last_purge < self.config.purge_interval:
            return 0
        self._last_purge = now
        return self.store.purge_expired()

    def _update(self, job_id: str, fn) -> JobMetadata:
        job = self.store.update(job_id, fn)
        if job is None:
            raise JobNotFoundError(job_id)
        return job
