#!/usr/bin/env python3
"""
Pydantic models for API requests and responses.
These models provide type safety for all API endpoints.
"""

from pydantic import BaseModel, Field
from typing import List, Optional

from .job_models import JobMetadata, JobStatus
from .report_models import ParseResult


class ProcessFileResponse(BaseModel):
    """Response model for /api/mmr/process endpoint"""
    success: bool
    job_id: str
    status: JobStatus
    message: str


class BatchJobEntry(BaseModel):
    job_id: str
    file_name: str


class ProcessBatchResponse(BaseModel):
    """Response model for /api/mmr/batch endpoint"""
    success: bool
    jobs: List[BatchJobEntry]
    count: int


class ParseNowResponse(BaseModel):
    """Response model for /api/mmr/parse endpoint"""
    success: bool
    result: ParseResult


class JobStatusResponse(BaseModel):
    """Response model for /api/mmr/jobs/<job_id> endpoint"""
    success: bool
    job: JobMetadata


class JobListRequest(BaseModel):
    """Query parameters for /api/mmr/jobs"""
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)
    status: Optional[JobStatus] = None


class JobListResponse(BaseModel):
    """Response model for /api/mmr/jobs endpoint"""
    success: bool
    jobs: List[JobMetadata]
    count: int
    limit: int
    offset: int


class JobActionResponse(BaseModel):
    """Response model for cancel and delete endpoints"""
    success: bool
    job_id: str
    message: str
