#!/usr/bin/env python3
"""
Exceptions raised by the MMR processor.
Data-quality problems are never raised; they are collected as ParseError/ParseWarning.
These exceptions cover I/O failures, ingress rejections and job ownership/state errors.
"""


class MMRProcessorError(Exception):
    """Base class for all MMR processor errors"""


class WorkbookLoadError(MMRProcessorError):
    """Workbook could not be read (missing file, corrupt container, unsupported format)"""


class FileValidationError(MMRProcessorError):
    """Upload rejected before a job was created"""


class BatchSizeError(FileValidationError):
    """Batch submission exceeds the configured ceiling"""


class JobNotFoundError(MMRProcessorError):
    """No job exists with the given id"""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class JobAccessDeniedError(MMRProcessorError):
    """Job exists but belongs to another user"""

    def __init__(self, job_id: str, user_id: str):
        super().__init__(f"User {user_id} does not own job {job_id}")
        self.job_id = job_id
        self.user_id = user_id


class InvalidJobStateError(MMRProcessorError):
    """Requested transition is not allowed from the job's current status"""


class JobCancelledError(MMRProcessorError):
    """Raised inside a worker when the job was cancelled while running"""


class JobTimeoutError(MMRProcessorError):
    """Job exceeded its wall-clock budget"""


class AuthenticationError(MMRProcessorError):
    """Request carries no caller identity"""
