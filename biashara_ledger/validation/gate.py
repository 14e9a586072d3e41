"""
Confidence Gate

Maps an extraction's self-reported confidence to one of three decisions:

    c <  reject_below               -> REJECTED
    reject_below <= c < accept_at   -> NEEDS_REVIEW
    c >= accept_at                  -> ACCEPTED

The bands are total and non-overlapping over [0, 1]. Thresholds are
configuration (AppSettings), not engine code.
"""

from typing import Optional

from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.models.transaction import ExtractionResult, GateDecision


class ConfidenceGate:
    """Three-band decision over extraction confidence."""

    def __init__(
        self,
        reject_below: Optional[float] = None,
        accept_at: Optional[float] = None,
        settings: Optional[AppSettings] = None,
    ):
        if reject_below is None or accept_at is None:
            settings = settings or get_settings().app
        self.reject_below = settings.gate_reject_below if reject_below is None else reject_below
        self.accept_at = settings.gate_accept_at if accept_at is None else accept_at

        if not 0.0 <= self.reject_below <= self.accept_at <= 1.0:
            raise ValueError(
                f"Gate thresholds must satisfy 0 <= reject_below ({self.reject_below}) "
                f"<= accept_at ({self.accept_at}) <= 1"
            )

    def decide(self, confidence: float) -> GateDecision:
        if confidence < self.reject_below:
            return GateDecision.REJECTED
        if confidence < self.accept_at:
            return GateDecision.NEEDS_REVIEW
        return GateDecision.ACCEPTED

    def __call__(self, result: ExtractionResult) -> GateDecision:
        return self.decide(result.confidence)


def gate(result: ExtractionResult, settings: Optional[AppSettings] = None) -> GateDecision:
    """Decide with the configured thresholds."""
    return ConfidenceGate(settings=settings)(result)
