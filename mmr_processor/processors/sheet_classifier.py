#!/usr/bin/env python3
"""
Sheet classifier - maps a sheet to an annexure type from its name and header content.
Strategies are evaluated in a fixed order and the first one with an answer wins:
sheet-name patterns, fuzzy alias match, header keyword rules.
"""

import logging
import re
from typing import List, Optional, Pattern, Sequence, Tuple

from mmr_processor.models.config_models import ClassifierConfig, Tolerances, default_classifier_config
from mmr_processor.models.report_models import AnnexureType
from mmr_processor.processors.format_adapter import similarity
from mmr_processor.processors.value_parsers import normalize_text


class NamePatternStrategy:
    """Ordered (annexure, compiled pattern) table searched against the sheet name"""

    def __init__(self, rules: List[Tuple[AnnexureType, Pattern]]):
        self.rules = rules

    def classify(self, sheet_name: str, header_text: str) -> Optional[AnnexureType]:
        for annexure, pattern in self.rules:
            if pattern.search(sheet_name):
                return annexure
        return None


class AliasStrategy:
    """Fuzzy match of the whole sheet name against canonical annexure names"""

    def __init__(self, aliases: List[Tuple[AnnexureType, str]], threshold: float):
        self.aliases = aliases
        self.threshold = threshold

    def classify(self, sheet_name: str, header_text: str) -> Optional[AnnexureType]:
        best: Optional[AnnexureType] = None
        best_score = 0.0
        for annexure, alias in self.aliases:
            score = similarity(sheet_name, alias)
            if score >= self.threshold and score > best_score:
                best, best_score = annexure, score
        return best


class ContentKeywordStrategy:
    """Header keyword rules; a rule matches when every keyword group has a hit"""

    def __init__(self, rules: List[Tuple[AnnexureType, List[List[str]]]]):
        self.rules = rules

    def classify(self, sheet_name: str, header_text: str) -> Optional[AnnexureType]:
        if not header_text:
            return None
        for annexure, groups in self.rules:
            if all(any(keyword in header_text for keyword in group) for group in groups):
                return annexure
        return None


class SheetClassifier:
    """Classifies sheets into annexure types"""

    def __init__(self, config: Optional[ClassifierConfig] = None, tolerances: Optional[Tolerances] = None):
        self.config = config or default_classifier_config()
        self.tolerances = tolerances or Tolerances()
        self.logger = logging.getLogger(self.__class__.__name__)

        name_rules = [
            (rule.annexure, re.compile(rule.pattern, re.IGNORECASE))
            for rule in self.config.ordered_name_patterns()
        ]
        aliases = [
            (annexure, normalize_text(alias))
            for annexure, names in self.config.aliases.items()
            for alias in names
        ]
        content_rules = [
            (rule.annexure, [[normalize_text(k) for k in group] for group in rule.keywords])
            for rule in self.config.content_rules
        ]
        self.strategies = [
            NamePatternStrategy(name_rules),
            AliasStrategy(aliases, self.tolerances.similarity_threshold),
            ContentKeywordStrategy(content_rules),
        ]

    def classify(self, sheet_name: str, header_row: Optional[Sequence[str]] = None) -> AnnexureType:
        """Return the annexure type of a sheet, or OTHER when nothing matches"""
        name = normalize_text(sheet_name)
        header_text = ' '.join(normalize_text(text) for text in (header_row or []) if text)

        for strategy in self.strategies:
            annexure = strategy.classify(name, header_text)
            if annexure is not None:
                self.logger.debug(f"Sheet '{sheet_name}' -> {annexure.value} ({strategy.__class__.__name__})")
                return annexure

        self.logger.debug(f"Sheet '{sheet_name}' unclassified")
        return AnnexureType.OTHER
