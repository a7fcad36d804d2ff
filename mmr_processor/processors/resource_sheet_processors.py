#!/usr/bin/env python3
"""
Resource sheet processors - manpower, equipment and materials annexures.
These sheets share one table layout with domain columns. A sheet without a
recognisable table yields an empty collection; absence of resource data is normal.
"""

from mmr_processor.models.report_models import (
    AnnexureType,
    Equipment,
    EquipmentEntry,
    Manpower,
    ManpowerEntry,
    MaterialEntry,
    Materials
)
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter

MANPOWER_COLUMNS = {
    'category': r'category|designation|trade|description|skill',
    'planned': r'planned|required|target|sanctioned',
    'actual': r'actual|deployed|present|available|engaged',
    'variance': r'variance|shortfall|difference|excess',
    'remarks': r'remark',
}

EQUIPMENT_COLUMNS = {
    'type': r'equipment|machinery|\btype\b|description|\bitem\b',
    'planned': r'planned|required|target',
    'deployed': r'deployed|mobili[sz]ed|available|actual|\bat\s*site',
    'operational': r'operational|working|in\s*use',
    'breakdown': r'breakdown|idle|repair|under\s*maintenance',
    'utilization': r'utili[sz]ation|usage',
}

MATERIAL_COLUMNS = {
    'item': r'material|\bitem\b|description',
    'unit': r'\bunit\b|\buom\b',
    'planned': r'planned|required|estimated',
    'procured': r'procured|received|purchased|supplied',
    'consumed': r'consumed|used|utili[sz]ed|issued',
    'stock': r'stock|balance|closing',
    'remarks': r'remark',
}


class ManpowerProcessor(BaseAnnexureProcessor):
    """Processor for Manpower sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.MANPOWER

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Manpower:
        rows = self._read_table(adapter, MANPOWER_COLUMNS, anchor=r'manpower|labou?r|designation') or []
        entries = []
        for row in rows:
            planned = row['planned'].as_number()
            actual = row['actual'].as_number()
            variance = row['variance']
            entries.append(ManpowerEntry(
                category=row['category'].as_text(),
                planned=planned,
                actual=actual,
                variance=actual - planned if variance.is_empty else variance.as_number(),
                remarks=self._optional_text(row['remarks']),
            ))
        return Manpower(entries=entries)


class EquipmentProcessor(BaseAnnexureProcessor):
    """Processor for Equipment sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.EQUIPMENT

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Equipment:
        rows = self._read_table(adapter, EQUIPMENT_COLUMNS, anchor=r'equipment|machinery|plant') or []
        entries = []
        for row in rows:
            deployed = row['deployed'].as_number()
            operational = row['operational'].as_number()
            utilization = row['utilization']
            entries.append(EquipmentEntry(
                type=row['type'].as_text(),
                planned=row['planned'].as_number(),
                deployed=deployed,
                operational=operational,
                breakdown=row['breakdown'].as_number(),
                utilization=(self._percent_of(operational, deployed)
                             if utilization.is_empty else utilization.as_percentage()),
            ))
        return Equipment(entries=entries)


class MaterialsProcessor(BaseAnnexureProcessor):
    """Processor for Materials sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.MATERIALS

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Materials:
        rows = self._read_table(adapter, MATERIAL_COLUMNS, anchor=r'materials?') or []
        entries = []
        for row in rows:
            procured = row['procured'].as_number()
            consumed = row['consumed'].as_number()
            stock = row['stock']
            entries.append(MaterialEntry(
                item=row['item'].as_text(),
                unit=row['unit'].as_text(),
                planned=row['planned'].as_number(),
                procured=procured,
                consumed=consumed,
                stock=procured - consumed if stock.is_empty else stock.as_number(),
                remarks=self._optional_text(row['remarks']),
            ))
        return Materials(entries=entries)
