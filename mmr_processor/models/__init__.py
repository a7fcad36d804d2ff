#!/usr/bin/env python3
"""
Models package for the MMR processor: report schema, configuration, jobs and API payloads.
"""

from .report_models import (
    AnnexureType,
    Severity,
    ParseError,
    ParseWarning,
    MMRReport,
    Annexures,
    SummaryMetrics,
    ReportMetadata,
    ParseResult,
    SheetInventoryEntry,
    ValidationResult
)
from .config_models import (
    MMRConfig,
    ParserConfig,
    ClassifierConfig,
    ConfidenceWeights,
    ValidationRules,
    JobConfig,
    QueueConfig,
    IngressConfig,
    ConfigSection,
    ConfigUpdateRequest,
    ConfigInquiryResponse,
    ConfigUpdateResponse
)
from .job_models import (
    JobStatus,
    JobProgress,
    JobMetadata,
    MMRJobData,
    MMRJobResult,
    FileSubmission
)

__all__ = [
    "AnnexureType",
    "Severity",
    "ParseError",
    "ParseWarning",
    "MMRReport",
    "Annexures",
    "SummaryMetrics",
    "ReportMetadata",
    "ParseResult",
    "SheetInventoryEntry",
    "ValidationResult",
    "MMRConfig",
    "ParserConfig",
    "ClassifierConfig",
    "ConfidenceWeights",
    "ValidationRules",
    "JobConfig",
    "QueueConfig",
    "IngressConfig",
    "ConfigSection",
    "ConfigUpdateRequest",
    "ConfigInquiryResponse",
    "ConfigUpdateResponse",
    "JobStatus",
    "JobProgress",
    "JobMetadata",
    "MMRJobData",
    "MMRJobResult",
    "FileSubmission"
]
