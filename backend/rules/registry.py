"""Ordered registry of overlay rules."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .models import RuleContext, RuleHit

# A rule inspects the decision so far and returns a hit when it forces review
OverlayRule = Callable[[RuleContext], "RuleHit | None"]


class RuleRegistry:
    """Rules run in registration order; registering a rule twice is a no-op."""

    def __init__(self, rules: Iterable[OverlayRule] = ()) -> None:
        self._rules: list[OverlayRule] = []
        self.extend(rules)

    def register(self, rule: OverlayRule) -> OverlayRule:
        if rule not in self._rules:
            self._rules.append(rule)
        return rule

    def extend(self, rules: Iterable[OverlayRule]) -> None:
        for rule in rules:
            self.register(rule)

    def unregister(self, rule: OverlayRule) -> bool:
        """Drop a rule; returns False when it was never registered."""
        if rule in self._rules:
            self._rules.remove(rule)
            return True
        return False

    def active_rules(self) -> tuple[OverlayRule, ...]:
        return tuple(self._rules)

    def rule_names(self) -> list[str]:
        return [getattr(rule, "__name__", repr(rule)) for rule in self._rules]

    def __contains__(self, rule: object) -> bool:
        return rule in self._rules

    def __len__(self) -> int:
        return len(self._rules)


default_registry = RuleRegistry()
