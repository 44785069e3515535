"""Threshold configuration for the business rule overlay."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RuleThresholds:
    confidence_floor: float = 0.85
    auto_approval_ceiling: Decimal = Decimal("5000")
    exclusion_markers: tuple[str, ...] = ("exclusion", "excluded", "not covered")

    @classmethod
    def from_env(cls) -> RuleThresholds:
        defaults = cls()
        return cls(
            confidence_floor=float(
                os.getenv("RULE_CONFIDENCE_FLOOR", defaults.confidence_floor)
            ),
            auto_approval_ceiling=Decimal(
                os.getenv(
                    "RULE_AUTO_APPROVAL_CEILING", str(defaults.auto_approval_ceiling)
                )
            ),
        )

    @staticmethod
    def clamp_score(score: float) -> float:
        if math.isnan(score) or score < 0.0:
            return 0.0
        if score > 1.0:
            return 1.0
        return score
