#!/usr/bin/env python3
"""
Pydantic models for asynchronous MMR jobs: the tracked job record,
the queue payload and the stored result.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .report_models import ParseResult


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class JobProgress(BaseModel):
    current: int = Field(0, ge=0)
    total: int = Field(0, ge=0)
    percentage: int = Field(0, ge=0, le=100)
    message: Optional[str] = None

    @classmethod
    def of(cls, current: int, total: int, message: Optional[str] = None) -> 'JobProgress':
        """Progress with percentage = current / total * 100 rounded half up, clamped to [0, 100]"""
        percentage = math.floor(current / total * 100 + 0.5) if total > 0 else 0
        return cls(current=current, total=total,
                   percentage=max(0, min(100, percentage)), message=message)


class MMRJobResult(BaseModel):
    """Result stored on a completed job"""
    job_id: str
    upload_id: str
    parse_result: ParseResult
    sheet_count: int = 0
    sheet_names: List[str] = Field(default_factory=list)
    processing_time: float = Field(0, ge=0, description="Seconds spent parsing")


class JobMetadata(BaseModel):
    """Tracked state of one asynchronous parse"""
    job_id: str
    user_id: str
    file_name: str
    file_size: int = Field(0, ge=0)
    status: JobStatus = JobStatus.PENDING
    progress: JobProgress = Field(default_factory=JobProgress)
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    result: Optional[MMRJobResult] = None
    retry_count: int = Field(0, ge=0)
    max_retries: int = Field(3, ge=0)

    @property
    def can_retry(self) -> bool:
        return self.retry_count < self.max_retries


class MMRJobData(BaseModel):
    """Queue payload; file content travels in memory and is never serialized"""
    job_id: str
    user_id: str
    file_name: str
    file_path: Optional[str] = None
    content: Optional[bytes] = Field(None, exclude=True, repr=False)
    file_size: int = Field(0, ge=0)
    upload_id: str
    options: Dict[str, Any] = Field(default_factory=dict)


class FileSubmission(BaseModel):
    """One uploaded workbook as received at ingress"""
    file_name: str = Field(..., min_length=1)
    content: Optional[bytes] = Field(None, repr=False)
    file_path: Optional[str] = None
    upload_id: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
