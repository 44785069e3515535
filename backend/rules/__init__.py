"""Business rule overlay for LLM claim decisions."""

from .engine import BusinessRuleOverlay, apply_rules, evaluate_rules
from .models import OverlayOutcome, RuleContext, RuleHit
from .registry import RuleRegistry
from .thresholds import RuleThresholds

__all__ = [
    "apply_rules",
    "evaluate_rules",
    "BusinessRuleOverlay",
    "OverlayOutcome",
    "RuleContext",
    "RuleHit",
    "RuleRegistry",
    "RuleThresholds",
]
