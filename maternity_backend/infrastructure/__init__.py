"""Infrastructure layer exports."""

from .rules import InMemoryRuleRepository, RuleRepository

__all__ = [
    "InMemoryRuleRepository",
    "RuleRepository",
]
