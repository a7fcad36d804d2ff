"""
MMR Annexure Processors Package
"""

from .base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from .summary_sheet_processor import SummarySheetProcessor
from .overview_sheet_processor import OverviewSheetProcessor
from .progress_sheet_processor import PhysicalProgressProcessor
from .financial_sheet_processor import FinancialProgressProcessor
from .resource_sheet_processors import ManpowerProcessor, EquipmentProcessor, MaterialsProcessor
from .schedule_sheet_processor import ScheduleProcessor
from .compliance_sheet_processors import SafetyProcessor, QualityProcessor
from .format_adapter import FormatAdapter
from .sheet_classifier import SheetClassifier
from .confidence_scorer import ConfidenceScorer
from .mmr_processor import MMRProcessor

__all__ = [
    'BaseAnnexureProcessor',
    'IssueCollector',
    'SummarySheetProcessor',
    'OverviewSheetProcessor',
    'PhysicalProgressProcessor',
    'FinancialProgressProcessor',
    'ManpowerProcessor',
    'EquipmentProcessor',
    'MaterialsProcessor',
    'ScheduleProcessor',
    'SafetyProcessor',
    'QualityProcessor',
    'FormatAdapter',
    'SheetClassifier',
    'ConfidenceScorer',
    'MMRProcessor'
]
