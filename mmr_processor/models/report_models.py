#!/usr/bin/env python3
"""
Pydantic models for the assembled MMR report.
One explicit schema shared by the extractors, the validator and the confidence scorer.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnnexureType(str, Enum):
    """Semantic sheet types found in a monthly report"""
    SUMMARY = "Summary"
    OVERVIEW = "Overview"
    PHYSICAL_PROGRESS = "PhysicalProgress"
    FINANCIAL_PROGRESS = "FinancialProgress"
    MANPOWER = "Manpower"
    EQUIPMENT = "Equipment"
    MATERIALS = "Materials"
    SCHEDULE = "Schedule"
    SAFETY = "Safety"
    QUALITY = "Quality"
    OTHER = "Other"

    @property
    def field_name(self) -> str:
        """Attribute name of this annexure on the Annexures model"""
        return ANNEXURE_FIELDS[self]


ANNEXURE_FIELDS = {
    AnnexureType.SUMMARY: 'summary',
    AnnexureType.OVERVIEW: 'overview',
    AnnexureType.PHYSICAL_PROGRESS: 'physical_progress',
    AnnexureType.FINANCIAL_PROGRESS: 'financial_progress',
    AnnexureType.MANPOWER: 'manpower',
    AnnexureType.EQUIPMENT: 'equipment',
    AnnexureType.MATERIALS: 'materials',
    AnnexureType.SCHEDULE: 'schedule',
    AnnexureType.SAFETY: 'safety',
    AnnexureType.QUALITY: 'quality',
    AnnexureType.OTHER: 'other',
}

GENERAL_ANNEXURE = "General"
CROSS_VALIDATION_ANNEXURE = "Cross-validation"


class Severity(str, Enum):
    ERROR = "error"
    CRITICAL = "critical"


class ParseError(BaseModel):
    """Blocking problem found while parsing or validating"""
    annexure: str
    message: str
    severity: Severity = Severity.ERROR
    cell: Optional[str] = None


class ParseWarning(BaseModel):
    """Advisory problem; never blocks a successful parse"""
    annexure: str
    message: str
    suggestion: Optional[str] = None
    cell: Optional[str] = None


class MilestoneStatus(str, Enum):
    COMPLETED = "Completed"
    IN_PROGRESS = "In Progress"
    DELAYED = "Delayed"
    PENDING = "Pending"


# ---------- annexure payloads ----------

class AnnexureSummary(BaseModel):
    """Identifying fields from the summary sheet"""
    project_name: str
    project_code: str = ""
    reporting_period: str = ""
    prepared_by: str = ""
    checked_by: str = ""
    approved_by: str = ""


class ProjectDetails(BaseModel):
    name: str = ""
    location: str = ""
    client: str = ""
    contract_value: float = 0
    start_date: datetime
    end_date: datetime
    revised_end_date: Optional[datetime] = None


class Milestone(BaseModel):
    id: str
    description: str = ""
    planned_date: datetime
    actual_date: Optional[datetime] = None
    status: MilestoneStatus = MilestoneStatus.PENDING
    remarks: Optional[str] = None


class ProjectOverview(BaseModel):
    project_details: ProjectDetails
    milestones: List[Milestone] = Field(default_factory=list)


class Activity(BaseModel):
    id: str
    description: str = ""
    unit: str = ""
    planned_qty: float = 0
    actual_qty: float = 0
    progress: float = 0
    variance: float = 0


class PhysicalProgress(BaseModel):
    activities: List[Activity] = Field(default_factory=list)


class BudgetItem(BaseModel):
    category: str = ""
    budgeted: float = 0
    actual: float = 0
    committed: float = 0
    variance: float = 0
    variance_percent: float = 0


class FinancialProgress(BaseModel):
    budget_items: List[BudgetItem] = Field(default_factory=list)

    @property
    def total_actual(self) -> float:
        return sum(item.actual for item in self.budget_items)


class ManpowerEntry(BaseModel):
    category: str = ""
    planned: float = 0
    actual: float = 0
    variance: float = 0
    remarks: Optional[str] = None


class Manpower(BaseModel):
    entries: List[ManpowerEntry] = Field(default_factory=list)


class EquipmentEntry(BaseModel):
    type: str = ""
    planned: float = 0
    deployed: float = 0
    operational: float = 0
    breakdown: float = 0
    utilization: float = 0


class Equipment(BaseModel):
    entries: List[EquipmentEntry] = Field(default_factory=list)


class MaterialEntry(BaseModel):
    item: str = ""
    unit: str = ""
    planned: float = 0
    procured: float = 0
    consumed: float = 0
    stock: float = 0
    remarks: Optional[str] = None


class Materials(BaseModel):
    entries: List[MaterialEntry] = Field(default_factory=list)


class ScheduleActivity(BaseModel):
    description: str = ""
    planned_start: Optional[datetime] = None
    planned_finish: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    actual_finish: Optional[datetime] = None
    delay_days: float = 0


class Schedule(BaseModel):
    activities: List[ScheduleActivity] = Field(default_factory=list)


class SafetyIncident(BaseModel):
    date: Optional[datetime] = None
    description: str = ""
    category: str = ""
    action_taken: str = ""


class Safety(BaseModel):
    man_hours: float = 0
    incidents: float = 0
    lost_time_injuries: float = 0
    near_misses: float = 0
    fatalities: float = 0
    incident_log: List[SafetyIncident] = Field(default_factory=list)


class QualityTest(BaseModel):
    test: str = ""
    planned: float = 0
    conducted: float = 0
    passed: float = 0
    failed: float = 0
    pass_rate: float = 0


class Quality(BaseModel):
    tests: List[QualityTest] = Field(default_factory=list)


class Annexures(BaseModel):
    """Extracted annexures; only successfully classified and extracted types are set"""
    summary: Optional[AnnexureSummary] = None
    overview: Optional[ProjectOverview] = None
    physical_progress: Optional[PhysicalProgress] = None
    financial_progress: Optional[FinancialProgress] = None
    manpower: Optional[Manpower] = None
    equipment: Optional[Equipment] = None
    materials: Optional[Materials] = None
    schedule: Optional[Schedule] = None
    safety: Optional[Safety] = None
    quality: Optional[Quality] = None

    def get(self, annexure: AnnexureType) -> Optional[BaseModel]:
        if annexure == AnnexureType.OTHER:
            return None
        return getattr(self, annexure.field_name)

    def set(self, annexure: AnnexureType, payload: BaseModel) -> None:
        if annexure == AnnexureType.OTHER:
            raise ValueError("Unclassified sheets have no annexure payload")
        setattr(self, annexure.field_name, payload)

    def present_types(self) -> List[AnnexureType]:
        return [annexure for annexure in AnnexureType
                if annexure != AnnexureType.OTHER and self.get(annexure) is not None]


# ---------- report ----------

class SummaryMetrics(BaseModel):
    """Headline figures of the report"""
    total_budget: float = 0
    actual_expenditure: float = 0
    physical_progress: float = 0
    financial_progress: float = 0
    variance: float = 0


class ReportMetadata(BaseModel):
    file_name: str = ""
    uploaded_at: datetime
    parsed_at: datetime
    parse_confidence: int = Field(0, ge=0, le=100)
    format_version: Optional[str] = None
    errors: List[ParseError] = Field(default_factory=list)
    warnings: List[ParseWarning] = Field(default_factory=list)


class MMRReport(BaseModel):
    """Normalized monthly management report"""
    project_id: str = "UNKNOWN"
    month: str = "Unknown"
    year: int
    report_date: datetime
    summary: SummaryMetrics = Field(default_factory=SummaryMetrics)
    annexures: Annexures = Field(default_factory=Annexures)
    metadata: ReportMetadata


class SheetInventoryEntry(BaseModel):
    """Diagnostic record for every sheet in the workbook, classified or not"""
    name: str
    annexure: AnnexureType
    rows: int
    columns: int
    extracted: bool = False
    header_preview: List[str] = Field(default_factory=list)


class ParseResult(BaseModel):
    """Outcome of one parse; always well-formed, even on failure"""
    success: bool
    data: Optional[MMRReport] = None
    errors: List[ParseError] = Field(default_factory=list)
    warnings: List[ParseWarning] = Field(default_factory=list)
    confidence: int = Field(0, ge=0, le=100)
    sheets: List[SheetInventoryEntry] = Field(default_factory=list)

    @property
    def critical_errors(self) -> List[ParseError]:
        return [error for error in self.errors if error.severity == Severity.CRITICAL]

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', exclude_none=True)


class ValidationResult(BaseModel):
    valid: bool
    errors: List[ParseError] = Field(default_factory=list)
    warnings: List[ParseWarning] = Field(default_factory=list)
