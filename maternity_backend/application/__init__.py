"""Application services."""

from .rules import RuleService, get_rule_service, reset_rule_state

__all__ = [
    "RuleService",
    "get_rule_service",
    "reset_rule_state",
]
