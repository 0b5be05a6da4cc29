"""
Validation rule definitions and domain limits.

Each rule has:
- Code: Unique identifier (e.g., "ENT-002")
- Severity: FAIL, WARN, or INFO
- Message template: Human-readable description
- Remediation: Suggested fix

Rules are organized by category:
- ENT: Entity field validation (drafts)
- GRAPH: Route node connectivity
"""

import re
from dataclasses import dataclass
from typing import Optional

from .core import Severity, ValidationIssue


# =============================================================================
# DOMAIN LIMITS
# =============================================================================

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000

ID_MIN = 1
ID_MAX = 2147483647

IBEACON_ID_MIN = 0
IBEACON_ID_MAX = 65535

BATTERY_LEVEL_MIN = 0
BATTERY_LEVEL_MAX = 100

FLOOR_NUMBER_MIN = -100
FLOOR_NUMBER_MAX = 100

LONGITUDE_MIN = -180.0
LONGITUDE_MAX = 180.0
LATITUDE_MIN = -90.0
LATITUDE_MAX = 90.0

POLYGON_MIN_POINTS = 3
POLYGON_MAX_POINTS = 1000

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.IGNORECASE
)
HEX_COLOR_PATTERN = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')


@dataclass(frozen=True)
class ValidationRule:
    """Definition of a validation rule.

    Attributes:
        code: Unique rule code (e.g., "ENT-001")
        severity: Default severity for this rule
        message_template: Template for error message (use {placeholders})
        remediation_template: Template for suggested fix
        description: Full description of the rule
    """
    code: str
    severity: Severity
    message_template: str
    remediation_template: Optional[str] = None
    description: Optional[str] = None

    def format_message(self, **kwargs) -> str:
        return self.message_template.format(**kwargs)

    def format_remediation(self, **kwargs) -> Optional[str]:
        if self.remediation_template:
            return self.remediation_template.format(**kwargs)
        return None

    def issue(self, field: Optional[str] = None, entity_id: Optional[int] = None,
              **kwargs) -> ValidationIssue:
        """Create an issue for this rule, formatting both templates."""
        if field is not None:
            kwargs.setdefault('field', field)
        return ValidationIssue(
            severity=self.severity,
            code=self.code,
            message=self.format_message(**kwargs),
            field=field,
            remediation=self.format_remediation(**kwargs),
            entity_id=entity_id,
        )


# =============================================================================
# ENTITY RULES (ENT)
# =============================================================================

ENT_001 = ValidationRule(
    code="ENT-001",
    severity=Severity.FAIL,
    message_template="{field} is required",
    remediation_template="Provide a value for {field}",
)

ENT_002 = ValidationRule(
    code="ENT-002",
    severity=Severity.FAIL,
    message_template="{field} must be between {min} and {max} (got {value})",
    remediation_template="Clamp {field} into [{min}, {max}]",
)

ENT_003 = ValidationRule(
    code="ENT-003",
    severity=Severity.FAIL,
    message_template="{field} must be a valid UUID (got {value!r})",
    remediation_template="Use the 8-4-4-4-12 hexadecimal form",
)

ENT_004 = ValidationRule(
    code="ENT-004",
    severity=Severity.FAIL,
    message_template="{field} must be a valid hex color (got {value!r})",
    remediation_template="Use #RGB or #RRGGBB",
)

ENT_005 = ValidationRule(
    code="ENT-005",
    severity=Severity.FAIL,
    message_template="Polygon must have at least {min} points (got {count})",
    remediation_template="Add vertices until the ring has {min} distinct points",
    description="Area features are closed rings; fewer than three vertices cannot enclose an area",
)

ENT_006 = ValidationRule(
    code="ENT-006",
    severity=Severity.FAIL,
    message_template="{field} must be valid [longitude, latitude] coordinates (got {value!r})",
    remediation_template="Longitude in [-180, 180], latitude in [-90, 90]",
)

ENT_007 = ValidationRule(
    code="ENT-007",
    severity=Severity.FAIL,
    message_template="{field} must be one of {choices} (got {value!r})",
)

ENT_008 = ValidationRule(
    code="ENT-008",
    severity=Severity.FAIL,
    message_template="{field} must be no more than {max} characters long",
)

ENT_009 = ValidationRule(
    code="ENT-009",
    severity=Severity.FAIL,
    message_template="Polygon must have at most {max} points (got {count})",
)

ENT_010 = ValidationRule(
    code="ENT-010",
    severity=Severity.FAIL,
    message_template="{field} must not reference the node itself",
    remediation_template="Remove {value} from {field}",
)

ENT_011 = ValidationRule(
    code="ENT-011",
    severity=Severity.FAIL,
    message_template="{field} must be a valid positive integer (got {value!r})",
)


# =============================================================================
# GRAPH RULES (GRAPH)
# =============================================================================

GRAPH_001 = ValidationRule(
    code="GRAPH-001",
    severity=Severity.FAIL,
    message_template="Node {node} lists itself as a connection",
    remediation_template="Remove the self-reference from node {node}",
)

GRAPH_002 = ValidationRule(
    code="GRAPH-002",
    severity=Severity.FAIL,
    message_template="Node {node} lists connection {target} {count} times",
    remediation_template="Deduplicate the connection list of node {node}",
)

GRAPH_003 = ValidationRule(
    code="GRAPH-003",
    severity=Severity.FAIL,
    message_template="Edge {node}->{target} has no reverse edge {target}->{node}",
    remediation_template="Connect {target} to {node} or reload the floor",
    description="Route node connections are undirected; every edge is listed on both endpoints",
)

GRAPH_004 = ValidationRule(
    code="GRAPH-004",
    severity=Severity.INFO,
    message_template="Node {node} connects to node {target} which is not in this collection",
    description="Connector nodes reach nodes on other floors",
)

GRAPH_005 = ValidationRule(
    code="GRAPH-005",
    severity=Severity.WARN,
    message_template="{node_type} node {node} has no connections",
    remediation_template="Connect node {node} or delete it",
)
