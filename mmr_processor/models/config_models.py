#!/usr/bin/env python3
"""
Pydantic models for MMR processor configuration.
These models define search tolerances, classifier pattern tables, validation thresholds,
confidence weights and job/queue/ingress limits.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .report_models import AnnexureType

MB = 1024 * 1024


class SearchWindow(BaseModel):
    """Area scanned by cell lookups"""
    max_rows: int = Field(50, ge=1, description="Rows scanned from the top of the sheet")
    max_cols: int = Field(20, ge=1, description="Columns scanned from the left of the sheet")


class Tolerances(BaseModel):
    """Positional and fuzzy matching tolerances"""
    max_row_offset: int = Field(5, ge=1, description="Rows below a label searched for its value")
    max_col_offset: int = Field(3, ge=1, description="Columns right of a label searched for its value")
    similarity_threshold: float = Field(0.85, gt=0, le=1, description="Minimum edit-distance similarity")


class ParserConfig(BaseModel):
    search_window: SearchWindow = Field(default_factory=SearchWindow)
    tolerances: Tolerances = Field(default_factory=Tolerances)
    header_scan_rows: int = Field(10, ge=1, description="Rows scanned for a sheet's header row")


class PatternRule(BaseModel):
    """One entry of an ordered (annexure, pattern) table"""
    annexure: AnnexureType
    pattern: str = Field(..., min_length=1)

    @field_validator('pattern')
    def validate_pattern(cls, v):
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regular expression '{v}': {e}")
        return v

    @field_validator('annexure')
    def validate_annexure(cls, v):
        if v == AnnexureType.OTHER:
            raise ValueError("Patterns cannot target the Other annexure")
        return v


class ContentRule(BaseModel):
    """Header keyword rule: every group must have at least one keyword present"""
    annexure: AnnexureType
    keywords: List[List[str]] = Field(..., min_length=1)


class ClassifierProfile(BaseModel):
    """Named set of extra sheet-name patterns evaluated before the defaults"""
    description: str = ""
    name_patterns: List[PatternRule] = Field(default_factory=list)


class ClassifierConfig(BaseModel):
    name_patterns: List[PatternRule]
    content_rules: List[ContentRule]
    aliases: Dict[AnnexureType, List[str]] = Field(default_factory=dict)
    profiles: Dict[str, ClassifierProfile] = Field(default_factory=dict)
    active_profile: Optional[str] = None

    @model_validator(mode='after')
    def validate_active_profile(self):
        if self.active_profile is not None and self.active_profile not in self.profiles:
            raise ValueError(f"Unknown classifier profile: {self.active_profile}")
        return self

    def ordered_name_patterns(self) -> List[PatternRule]:
        """Active profile patterns first, then the defaults, in declaration order"""
        profile_patterns = []
        if self.active_profile:
            profile_patterns = self.profiles[self.active_profile].name_patterns
        return list(profile_patterns) + list(self.name_patterns)


class ConfidenceWeights(BaseModel):
    header_match: float = Field(0.3, ge=0, le=1)
    data_complete: float = Field(0.4, ge=0, le=1)
    validation_pass: float = Field(0.3, ge=0, le=1)

    @model_validator(mode='after')
    def validate_sum(self):
        total = self.header_match + self.data_complete + self.validation_pass
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Confidence weights must sum to 1.0, got {total:.4f}")
        return self


class ValidationRules(BaseModel):
    """Business-rule thresholds; defaults follow the monthly report review policy"""
    progress_gap_threshold: float = Field(20, ge=0, description="Physical ahead of financial, in points")
    milestone_delay_days: int = Field(30, ge=0, description="Allowed milestone slip before warning")
    budget_overrun_ratio: float = Field(0.10, ge=0, description="Allowed actual over budgeted")
    variance_epsilon: float = Field(0.01, ge=0, description="Stated vs recomputed variance")
    expenditure_tolerance: float = Field(100, ge=0, description="Summary vs financial annexure, currency units")
    progress_calc_tolerance: float = Field(5, ge=0, description="Stated vs computed activity progress, in points")


class JobConfig(BaseModel):
    ttl_seconds: int = Field(7 * 24 * 3600, ge=1, description="Retention of job records")
    max_retries: int = Field(3, ge=0)
    purge_interval: int = Field(3600, ge=0, description="Minimum seconds between sweeps of expired records")


class QueueConfig(BaseModel):
    concurrency: int = Field(10, ge=1, description="Worker threads")
    backoff_delay: float = Field(2.0, ge=0, description="Base delay of the exponential retry backoff")
    job_timeout: float = Field(600, gt=0, description="Wall-clock budget per job, seconds")
    poll_interval: float = Field(0.5, gt=0)


class IngressConfig(BaseModel):
    max_file_size: int = Field(100 * MB, gt=0)
    allowed_extensions: List[str] = Field(default_factory=lambda: ['.xlsx', '.xlsm', '.xls', '.csv'])
    max_batch_size: int = Field(10, ge=1)
    upload_folder: Optional[str] = None

    @field_validator('allowed_extensions')
    def validate_extensions(cls, v):
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                raise ValueError("Extension cannot be empty")
            normalized.append(ext if ext.startswith('.') else f'.{ext}')
        return normalized


def _rule(annexure: AnnexureType, pattern: str) -> PatternRule:
    return PatternRule(annexure=annexure, pattern=pattern)


def default_name_patterns() -> List[PatternRule]:
    """Default sheet-name table; earlier entries take precedence"""
    return [
        _rule(AnnexureType.SUMMARY, r'summary|executive\s*summary'),
        _rule(AnnexureType.OVERVIEW, r'annexure\s*-?\s*a\b|project\s*overview|overview'),
        _rule(AnnexureType.PHYSICAL_PROGRESS, r'annexure\s*-?\s*b\b|physical\s*progress|work\s*done'),
        _rule(AnnexureType.FINANCIAL_PROGRESS, r'annexure\s*-?\s*c\b|financial|expenditure|\bcost'),
        _rule(AnnexureType.MANPOWER, r'annexure\s*-?\s*d\b|manpower|labou?r|staff'),
        _rule(AnnexureType.EQUIPMENT, r'annexure\s*-?\s*e\b|equipment|machinery|\bplant'),
        _rule(AnnexureType.MATERIALS, r'annexure\s*-?\s*f\b|materials?|steel|cement'),
        _rule(AnnexureType.SCHEDULE, r'schedule|time\s*line|programme|milestone'),
        _rule(AnnexureType.SAFETY, r'safety|accident|\bhse\b'),
        _rule(AnnexureType.QUALITY, r'quality|qa\s*/?\s*qc'),
        _rule(AnnexureType.PHYSICAL_PROGRESS, r'progress'),
    ]


def default_content_rules() -> List[ContentRule]:
    return [
        ContentRule(annexure=AnnexureType.SUMMARY, keywords=[['project'], ['name']]),
        ContentRule(annexure=AnnexureType.PHYSICAL_PROGRESS, keywords=[['progress'], ['completion']]),
        ContentRule(annexure=AnnexureType.PHYSICAL_PROGRESS, keywords=[['activity', 'work item'], ['planned'], ['actual', 'achieved']]),
        ContentRule(annexure=AnnexureType.FINANCIAL_PROGRESS, keywords=[['budget', 'cost', 'expenditure']]),
        ContentRule(annexure=AnnexureType.MANPOWER, keywords=[['designation', 'skilled', 'manpower', 'labour', 'labor']]),
        ContentRule(annexure=AnnexureType.EQUIPMENT, keywords=[['equipment', 'machinery']]),
        ContentRule(annexure=AnnexureType.MATERIALS, keywords=[['material', 'cement', 'steel'], ['quantity', 'qty', 'procured', 'consumed']]),
        ContentRule(annexure=AnnexureType.SCHEDULE, keywords=[['milestone', 'schedule', 'baseline']]),
        ContentRule(annexure=AnnexureType.SAFETY, keywords=[['incident', 'accident', 'lost time']]),
        ContentRule(annexure=AnnexureType.QUALITY, keywords=[['test'], ['passed', 'failed', 'conducted']]),
        ContentRule(annexure=AnnexureType.PHYSICAL_PROGRESS, keywords=[['progress']]),
    ]


def default_aliases() -> Dict[AnnexureType, List[str]]:
    return {
        AnnexureType.SUMMARY: ['summary', 'executive summary'],
        AnnexureType.OVERVIEW: ['project overview', 'overview'],
        AnnexureType.PHYSICAL_PROGRESS: ['physical progress'],
        AnnexureType.FINANCIAL_PROGRESS: ['financial progress'],
        AnnexureType.MANPOWER: ['manpower'],
        AnnexureType.EQUIPMENT: ['equipment'],
        AnnexureType.MATERIALS: ['materials'],
        AnnexureType.SCHEDULE: ['schedule'],
        AnnexureType.SAFETY: ['safety'],
        AnnexureType.QUALITY: ['quality'],
    }


def default_profiles() -> Dict[str, ClassifierProfile]:
    """Project-specific naming conventions (short 'Anx X' sheet names)"""
    anx = r'\banx\s*-?\s*{}\b'
    return {
        'anx_short': ClassifierProfile(
            description="Project reports using 'Anx A'..'Anx H' sheet names and MCRP summaries",
            name_patterns=[
                _rule(AnnexureType.SUMMARY, r'mcrp|project\s*summary'),
                _rule(AnnexureType.SCHEDULE, anx.format('a')),
                _rule(AnnexureType.PHYSICAL_PROGRESS, anx.format('b')),
                _rule(AnnexureType.FINANCIAL_PROGRESS, anx.format('c')),
                _rule(AnnexureType.MATERIALS, anx.format('d')),
                _rule(AnnexureType.MANPOWER, anx.format('e')),
                _rule(AnnexureType.EQUIPMENT, anx.format('f')),
                _rule(AnnexureType.SAFETY, anx.format('g')),
                _rule(AnnexureType.QUALITY, anx.format('h')),
            ],
        ),
    }


def default_classifier_config() -> ClassifierConfig:
    return ClassifierConfig(
        name_patterns=default_name_patterns(),
        content_rules=default_content_rules(),
        aliases=default_aliases(),
        profiles=default_profiles(),
    )


class MMRConfig(BaseModel):
    """Complete configuration of the MMR processor"""
    parser: ParserConfig = Field(default_factory=ParserConfig)
    classifier: ClassifierConfig = Field(default_factory=default_classifier_config)
    confidence_weights: ConfidenceWeights = Field(default_factory=ConfidenceWeights)
    validation: ValidationRules = Field(default_factory=ValidationRules)
    jobs: JobConfig = Field(default_factory=JobConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    ingress: IngressConfig = Field(default_factory=IngressConfig)

    @classmethod
    def get_default_config(cls) -> 'MMRConfig':
        """Get default configuration for all components"""
        return cls()


class ConfigSection(str, Enum):
    """Sections that can be updated through the configuration API"""
    PARSER = "parser"
    CLASSIFIER = "classifier"
    CONFIDENCE_WEIGHTS = "confidence_weights"
    VALIDATION = "validation"
    JOBS = "jobs"
    QUEUE = "queue"
    INGRESS = "ingress"


class ConfigUpdateRequest(BaseModel):
    """Request model for updating one configuration section"""
    section: ConfigSection = Field(..., description="Section to update")
    values: Dict[str, Any] = Field(..., description="Fields to overwrite in the section")

    @field_validator('values')
    def validate_values(cls, v):
        if not v:
            raise ValueError("At least one value must be provided")
        return v


class ConfigInquiryResponse(BaseModel):
    """Response model for configuration inquiry"""
    success: bool
    config: Optional[MMRConfig] = None
    error: Optional[str] = None


class ConfigUpdateResponse(BaseModel):
    """Response model for configuration update"""
    success: bool
    message: str
    updated_section: Optional[str] = None
    error: Optional[str] = None
