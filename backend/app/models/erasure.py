"""
Erasure Data Contracts

Plan steps, resolved owners and per-step / aggregate erasure results.
Plain dataclasses, no database access. Steps are immutable once declared.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class PrincipalKind(str, Enum):
    """Kind of principal owned by the identity provider."""
    USER = "user"
    ADMIN = "admin"


class ReferenceKind(str, Enum):
    """Edge kind between a column and the principal it points at."""
    OWNING = "owning"  # Row belongs to the principal, deleted on erasure
    NON_OWNING = "non_owning"  # Principal is an approver/reviewer/processor, column nulled


class ReferenceMatch(str, Enum):
    """Which principal attribute a tagged column holds."""
    ID = "id"
    CONTACT = "contact"


class StepOperation(str, Enum):
    """Operation an erasure step performs on its table."""
    DELETE_MATCHING = "delete_matching"
    NULLIFY_COLUMN = "nullify_column"


class PlanGroup(int, Enum):
    """Conceptual grouping of plan steps."""
    LEAF = 1  # Owning entities with no children of their own
    PARENT = 2  # Owning entities whose children are stepped first
    MULTI_HOP = 3  # Owning entities reached through an intermediate table
    NON_OWNING = 4  # Nullification of secondary-actor columns
    MIRROR = 5  # The principal's own profile rows


class StepOutcome(str, Enum):
    """Outcome of one step attempt."""
    OK = "ok"
    ERROR = "error"


class ErasureStatus(str, Enum):
    """Aggregate outcome of an erasure invocation."""
    COMPLETE = "complete"
    PARTIAL = "partial"  # Dependent data removed, identity record persists
    NOT_FOUND = "not_found"


def principal_ref(
    reference: ReferenceKind,
    match: ReferenceMatch = ReferenceMatch.ID,
) -> Dict[str, str]:
    """Column.info tag marking a column that references a principal."""
    return {"principal_ref": reference.value, "match": match.value}


# =============================================================================
# PLAN
# =============================================================================

@dataclass(frozen=True)
class ChildLink:
    """
    Grandchild table reached through the step table's key.

    Rows in `table` whose `column` holds the id of a matched step row are
    deleted before the matched rows themselves.
    """
    table: str
    column: str


@dataclass(frozen=True)
class ErasureStep:
    """
    One ordered unit of the erasure plan.

    For DELETE_MATCHING, rows match when any id column equals the principal
    id or any contact column equals the contact address.
    For NULLIFY_COLUMN, id_columns holds exactly the one column set to NULL.
    """
    name: str
    table: str
    group: PlanGroup
    operation: StepOperation
    reference: ReferenceKind
    id_columns: Tuple[str, ...] = ()
    contact_columns: Tuple[str, ...] = ()
    children: Tuple[ChildLink, ...] = ()
    key_column: str = "id"

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.id_columns + self.contact_columns

    @property
    def nullified_column(self) -> Optional[str]:
        if self.operation != StepOperation.NULLIFY_COLUMN or not self.id_columns:
            return None
        return self.id_columns[0]


# =============================================================================
# OWNER
# =============================================================================

@dataclass(frozen=True)
class ResolvedOwner:
    """Canonical principal an erasure runs against."""
    principal_id: str
    contact_address: Optional[str] = None
    kind: PrincipalKind = PrincipalKind.USER
    profile_found: bool = False
    ambiguous: bool = False  # Contact address matched several profiles


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class StepResult:
    """Result of a single step attempt."""
    step_index: int
    name: str
    table: str
    outcome: StepOutcome
    rows_affected: int = 0
    error_detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == StepOutcome.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_index": self.step_index,
            "name": self.name,
            "table": self.table,
            "outcome": self.outcome.value,
            "rows_affected": self.rows_affected,
            "error_detail": self.error_detail,
        }


@dataclass
class StepPreview:
    """Dry-run count of the rows a step would touch."""
    step_index: int
    name: str
    table: str
    operation: StepOperation
    reference: ReferenceKind
    rows: int = 0
    error_detail: Optional[str] = None


@dataclass
class ErasureResult:
    """
    Aggregate result of one erasure invocation.

    identity_removed is reported on its own and never derived from the
    step list: dependent data can be gone while the identity persists.
    """
    principal_id: Optional[str]
    contact_address: Optional[str]
    overall_status: ErasureStatus
    kind: Optional[PrincipalKind] = None
    identity_removed: bool = False
    identity_error: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)

    @classmethod
    def not_found(
        cls,
        principal_id: Optional[str] = None,
        contact_address: Optional[str] = None,
    ) -> "ErasureResult":
        return cls(
            principal_id=principal_id,
            contact_address=contact_address,
            overall_status=ErasureStatus.NOT_FOUND,
        )

    @property
    def errors(self) -> List[StepResult]:
        """Step-level failures, kept for audit only."""
        return [s for s in self.steps if not s.ok]

    @property
    def rows_affected(self) -> int:
        return sum(s.rows_affected for s in self.steps)

    def failed_steps(self) -> List[Dict[str, Any]]:
        return [
            {"step_index": s.step_index, "name": s.name, "error": s.error_detail}
            for s in self.errors
        ]
