"""
Core data structures for entity and graph validation.

Defines the fundamental types used throughout the validation package:
- Severity: Issue severity levels (INFO, WARN, FAIL)
- ValidationIssue: Individual validation finding, tied to an entity field
- ValidationResult: Collection of issues with pass/fail status
- ValidationError: Exception raised when a draft cannot be built
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from indoor_editor.errors import EditorError


class Severity(Enum):
    """Validation issue severity levels.

    - INFO: Informational, reported but doesn't affect pass/fail
    - WARN: Warning, reported but doesn't block persistence
    - FAIL: Error, the entity cannot be built
    """
    INFO = auto()
    WARN = auto()
    FAIL = auto()

    def __str__(self) -> str:
        return self.name


@dataclass
class ValidationIssue:
    """Represents a single validation finding.

    Attributes:
        severity: Issue severity (INFO, WARN, FAIL)
        code: Rule code (e.g., "ENT-002")
        message: Human-readable description
        field: Name of the offending entity field, if any
        remediation: Optional suggested fix
        entity_id: Optional identifier of the entity the issue is about
    """
    severity: Severity
    code: str
    message: str
    field: Optional[str] = None
    remediation: Optional[str] = None
    entity_id: Optional[int] = None

    def format(self) -> str:
        """Format issue for display.

        Returns:
            [SEVERITY] CODE field=F entity=E :: message :: fix=FIX
        """
        field_name = self.field or '-'
        entity = self.entity_id if self.entity_id is not None else '-'
        fix = self.remediation or 'N/A'
        return (
            f"[{self.severity}] {self.code} field={field_name} entity={entity} :: "
            f"{self.message} :: fix={fix}"
        )

    def __str__(self) -> str:
        return self.format()


@dataclass
class ValidationResult:
    """Collection of validation issues with pass/fail determination.

    Issues keep the order in which they were found, so ``first_failure``
    is the first invalid field encountered by a draft.
    """
    issues: List[ValidationIssue] = field(default_factory=list)
    subject: Optional[str] = None

    @property
    def passed(self) -> bool:
        """Check if validation passed (no FAIL issues)."""
        return not any(i.severity == Severity.FAIL for i in self.issues)

    @property
    def failed(self) -> bool:
        return not self.passed

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.FAIL]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARN]

    @property
    def infos(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.INFO]

    @property
    def first_failure(self) -> Optional[ValidationIssue]:
        errors = self.errors
        return errors[0] if errors else None

    def add_issue(self, issue: ValidationIssue) -> None:
        self.issues.append(issue)

    def merge(self, other: 'ValidationResult') -> 'ValidationResult':
        """Merge another result into this one.

        Returns:
            Self for chaining
        """
        self.issues.extend(other.issues)
        return self

    def report(self) -> str:
        """Generate a formatted multi-line report of all issues."""
        if not self.issues:
            return "Validation passed: No issues found"

        lines = []
        subject = f" ({self.subject})" if self.subject else ""
        status = "PASSED" if self.passed else "FAILED"
        lines.append(f"Validation {status}{subject}: {len(self.issues)} issue(s)")
        lines.append("-" * 60)

        for severity in [Severity.FAIL, Severity.WARN, Severity.INFO]:
            severity_issues = [i for i in self.issues if i.severity == severity]
            if severity_issues:
                lines.append(f"\n{severity.name} ({len(severity_issues)}):")
                for issue in severity_issues:
                    lines.append(issue.format())

        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'passed': self.passed,
            'subject': self.subject,
            'issue_count': len(self.issues),
            'fail_count': len(self.errors),
            'warn_count': len(self.warnings),
            'info_count': len(self.infos),
            'issues': [
                {
                    'severity': str(issue.severity),
                    'code': issue.code,
                    'message': issue.message,
                    'field': issue.field,
                    'remediation': issue.remediation,
                    'entity_id': issue.entity_id,
                }
                for issue in self.issues
            ]
        }


class ValidationError(EditorError):
    """Raised when a draft is built while it still has FAIL issues.

    Attributes:
        result: The ValidationResult that caused the failure
        field: The first invalid field
    """

    kind = "validation"

    def __init__(self, result: ValidationResult):
        self.result = result
        first = result.first_failure
        self.field = first.field if first else None
        message = first.message if first else "Validation failed"
        super().__init__(message)
