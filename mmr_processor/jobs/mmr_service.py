#!/usr/bin/env python3
"""
MMR service - ingress and status API of the job layer.
Uploads are validated before any job record exists; a rejected upload or a
failed enqueue never leaves a job behind.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from mmr_processor.exceptions import BatchSizeError, FileValidationError
from mmr_processor.models.config_models import IngressConfig
from mmr_processor.models.job_models import FileSubmission, JobMetadata, JobStatus, MMRJobData
from mmr_processor.models.report_models import ParseResult
from mmr_processor.jobs.job_queue import JobQueue
from mmr_processor.jobs.job_tracker import JobTracker
from mmr_processor.processors.mmr_processor import MMRProcessor


class MMRService:
    """Entry point for submitting MMR workbooks and querying their jobs"""

    def __init__(self, tracker: JobTracker, job_queue: JobQueue, processor: MMRProcessor,
                 config: Optional[IngressConfig] = None):
        self.tracker = tracker
        self.job_queue = job_queue
        self.processor = processor
        self.config = config or IngressConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

    # ---------- ingress ----------

    def validate_submission(self, submission: FileSubmission) -> int:
        """Reject missing, empty, oversize or unsupported files; returns the file size"""
        extension = Path(submission.file_name).suffix.lower()
        if extension not in self.config.allowed_extensions:
            raise FileValidationError(
                f"Unsupported file type '{extension or submission.file_name}'. "
                f"Allowed: {', '.join(self.config.allowed_extensions)}"
            )

        if submission.content is not None:
            file_size = len(submission.content)
        elif submission.file_path:
            if not os.path.isfile(submission.file_path):
                raise FileValidationError(f"File not found: {submission.file_path}")
            file_size = os.path.getsize(submission.file_path)
        else:
            raise FileValidationError(f"No file provided for {submission.file_name}")

        if file_size == 0:
            raise FileValidationError(f"File {submission.file_name} is empty")
        if file_size > self.config.max_file_size:
            raise FileValidationError(
                f"File {submission.file_name} is {file_size} bytes, "
                f"limit is {self.config.max_file_size} bytes"
            )
        return file_size

    def process_file(self, user_id: str, submission: FileSubmission) -> JobMetadata:
        """Validate one upload, create its job and enqueue it"""
        file_size = self.validate_submission(submission)
        job, data = self._create_job(user_id, submission, file_size)
        try:
            self.job_queue.add_job(data)
        except Exception:
            self.tracker.delete_job(job.job_id)
            raise
        return job

    def process_batch(self, user_id: str, submissions: List[FileSubmission]) -> List[JobMetadata]:
        """All-or-nothing batch: every file is validated before any job is created"""
        if not submissions:
            raise FileValidationError("No files provided")
        if len(submissions) > self.config.max_batch_size:
            raise BatchSizeError(
                f"Batch of {len(submissions)} files exceeds the limit of {self.config.max_batch_size}"
            )

        sizes = [self.validate_submission(submission) for submission in submissions]

        created = []
        try:
            for submission, size in zip(submissions, sizes):
                created.append(self._create_job(user_id, submission, size))
            self.job_queue.add_batch_jobs([data for _, data in created])
        except Exception:
            self.logger.error(f"Batch submission failed for user {user_id}, removing {len(created)} jobs")
            for job, _ in created:
                self.tracker.delete_job(job.job_id)
            raise

        self.logger.info(f"Batch of {len(created)} jobs submitted for user {user_id}")
        return [job for job, _ in created]

    def parse_now(self, submission: FileSubmission) -> ParseResult:
        """Synchronous parse without creating a job"""
        self.validate_submission(submission)
        source = submission.content if submission.content is not None else submission.file_path
        return self.processor.parse_file(source, file_name=submission.file_name)

    # ---------- egress ----------

    def get_job_status(self, job_id: str, user_id: str) -> JobMetadata:
        return self.tracker.get_owned_job(job_id, user_id)

    def get_user_jobs(self, user_id: str, limit: int = 20, offset: int = 0) -> List[JobMetadata]:
        return self.tracker.get_user_jobs(user_id, limit=limit, offset=offset)

    def get_jobs_by_status(self, user_id: str, status: JobStatus) -> List[JobMetadata]:
        return self.tracker.get_jobs_by_status(user_id, status)

    def cancel_job(self, job_id: str, user_id: str) -> JobMetadata:
        self.tracker.get_owned_job(job_id, user_id)
        return self.tracker.cancel_job(job_id)

    def delete_job(self, job_id: str, user_id: str) -> None:
        self.tracker.get_owned_job(job_id, user_id)
        self.tracker.delete_job(job_id)

    # ---------- helpers ----------

    def _create_job(self, user_id: str, submission: FileSubmission, file_size: int):
        job_id = str(uuid.uuid4())
        job = self.tracker.create_job(job_id, user_id, submission.file_name, file_size)
        data = MMRJobData(
            job_id=job_id,
            user_id=user_id,
            file_name=submission.file_name,
            file_path=submission.file_path,
            content=submission.content,
            file_size=file_size,
            upload_id=submission.upload_id or job_id,
            options=submission.options,
        )
        return job, data
