"""
Validation package for the floor-plan editor.

Public API:
    - ValidationResult, ValidationIssue, Severity: Core result types
    - ValidationError: Exception raised when a draft cannot be built
    - ValidationRule: Rule template used by drafts and graph checks

Graph connectivity checks live in ``graph_checks`` (they depend on the
model package, which depends on this one).
"""

from .core import (
    Severity,
    ValidationIssue,
    ValidationResult,
    ValidationError,
)
from .rules import ValidationRule

__all__ = [
    # Core types
    'Severity',
    'ValidationIssue',
    'ValidationResult',
    'ValidationError',
    # Rules
    'ValidationRule',
]
