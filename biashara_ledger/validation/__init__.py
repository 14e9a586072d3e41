"""
Validation Package

Confidence gate plus semantic checks on extractions.
"""

from biashara_ledger.validation.gate import ConfidenceGate, gate
from biashara_ledger.validation.validator import ExtractionValidator

__all__ = ["ConfidenceGate", "ExtractionValidator", "gate"]
