#!/usr/bin/env python3
"""
Confidence scorer - weights header match, data completeness and validation pass rate
into a single 0-100 score for a parse.
"""

import logging
import math
from typing import Dict, List, Optional

from mmr_processor.models.config_models import ConfidenceWeights
from mmr_processor.models.report_models import ParseError, ParseWarning, Severity

CRITICAL_PENALTY = 0.2


class ConfidenceScorer:
    """Computes the parse confidence score"""

    def __init__(self, weights: Optional[ConfidenceWeights] = None):
        self.weights = weights or ConfidenceWeights()
        self.logger = logging.getLogger(self.__class__.__name__)

    def factor_scores(self, extracted_sheets: int, errors: List[ParseError],
                      warnings: List[ParseWarning]) -> Dict[str, float]:
        """The three factor scores, each in [0, 1]"""
        critical_count = sum(1 for error in errors if error.severity == Severity.CRITICAL)
        total_validations = len(errors) + len(warnings)
        return {
            'header_match': 1.0 if extracted_sheets > 0 else 0.0,
            'data_complete': max(0.0, 1.0 - CRITICAL_PENALTY * critical_count),
            'validation_pass': max(0.0, 1.0 - len(errors) / total_validations) if total_validations else 1.0,
        }

    def score(self, extracted_sheets: int, errors: List[ParseError], warnings: List[ParseWarning]) -> int:
        """100 * weighted sum rounded half up, clamped to [0, 100]"""
        scores = self.factor_scores(extracted_sheets, errors, warnings)
        weighted = (
            self.weights.header_match * scores['header_match']
            + self.weights.data_complete * scores['data_complete']
            + self.weights.validation_pass * scores['validation_pass']
        )
        confidence = max(0, min(100, math.floor(100 * weighted + 0.5)))
        self.logger.debug(f"Confidence {confidence} from {scores}")
        return confidence
