"""
MMR Report Validators Package
"""

from .mmr_validator import MMRValidator

__all__ = [
    'MMRValidator'
]
