"""Domain layer definitions."""

from .rules import RuleStoreState, UploadRecord

__all__ = [
    "RuleStoreState",
    "UploadRecord",
]
