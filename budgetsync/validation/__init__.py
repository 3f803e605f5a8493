"""Validation package."""

from budgetsync.validation.validator import EntryValidator

__all__ = ["EntryValidator"]
