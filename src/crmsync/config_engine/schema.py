"""Schema definitions for the Config Engine.

Defines the primitive model, staged state, statement clauses and all
result dataclasses.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


PROMOTION_WRAPPER_PREFIX = "ms_"


class Ensure(str, Enum):
    """Desired presence of a primitive."""
    PRESENT = "present"   # Create if missing, update if different
    ABSENT = "absent"     # Stop and delete if exists


class ChangeType(str, Enum):
    """Type of change in a diff."""
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    NO_CHANGE = "no_change"


class ClauseKind(str, Enum):
    """Clause variants of the crm configuration language."""
    HEADER = "header"
    OPERATION = "operation"
    PARAMETERS = "parameters"
    METADATA = "metadata"
    PROMOTION = "promotion"


@dataclass
class PrimitiveDescriptor:
    """A single cluster primitive and its attribute bags."""
    name: str
    resource_class: str
    resource_type: str
    resource_provider: Optional[str] = None
    parameters: dict[str, str] = field(default_factory=dict)
    operations: dict[str, dict[str, str]] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    promotable: bool = False
    promotion_metadata: dict[str, str] = field(default_factory=dict)

    @property
    def agent(self) -> str:
        """Resource agent reference, e.g. ocf:heartbeat:IPaddr2."""
        if self.resource_provider:
            return f"{self.resource_class}:{self.resource_provider}:{self.resource_type}"
        return f"{self.resource_class}:{self.resource_type}"

    @property
    def promotion_wrapper_name(self) -> str:
        return promotion_wrapper_name(self.name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for YAML/JSON output."""
        data: dict[str, Any] = {
            "class": self.resource_class,
            "provider": self.resource_provider,
            "type": self.resource_type,
            "parameters": dict(self.parameters),
            "operations": {k: dict(v) for k, v in self.operations.items()},
            "metadata": dict(self.metadata),
            "promotable": self.promotable,
        }
        if self.promotable:
            data["ms_metadata"] = dict(self.promotion_metadata)
        return data


def promotion_wrapper_name(name: str) -> str:
    """Name of the master/slave wrapper for a primitive."""
    return f"{PROMOTION_WRAPPER_PREFIX}{name}"


@dataclass
class DesiredPrimitive:
    """A primitive as declared in a manifest."""
    descriptor: PrimitiveDescriptor
    ensure: Ensure = Ensure.PRESENT
    cib: Optional[str] = None

    @property
    def name(self) -> str:
        return self.descriptor.name


# --- Staged State ---

@dataclass
class StagedPrimitive:
    """Desired values recorded for the next flush."""
    descriptor: PrimitiveDescriptor
    cib: Optional[str] = None

    @property
    def name(self) -> str:
        return self.descriptor.name


class StagedState:
    """Caller-owned map of primitives staged for flushing.

    One reconciliation run owns an instance exclusively. Nothing in here
    talks to the cluster.
    """

    def __init__(self):
        self._entries: dict[str, StagedPrimitive] = {}

    def stage(self, entry: StagedPrimitive) -> None:
        """Record (or replace) the staged values for a primitive."""
        self._entries[entry.name] = entry

    def get(self, name: str) -> Optional[StagedPrimitive]:
        return self._entries.get(name)

    def discard(self, name: str) -> None:
        """Forget the staged values for a primitive, if any."""
        self._entries.pop(name, None)

    def names(self) -> list[str]:
        return list(self._entries.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# --- Statement Clauses ---

@dataclass
class Clause:
    """One clause of a statement: leading keywords plus attribute pairs."""
    kind: ClauseKind
    keywords: list[str]
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class Statement:
    """A single configuration-language statement (one logical line)."""
    clauses: list[Clause] = field(default_factory=list)

    @property
    def kind(self) -> Optional[ClauseKind]:
        """Kind of the leading clause."""
        return self.clauses[0].kind if self.clauses else None

    def find(self, kind: ClauseKind) -> list[Clause]:
        """All clauses of a given kind, in order."""
        return [c for c in self.clauses if c.kind == kind]


@dataclass
class ConfigurationUpdate:
    """Every statement applied for one primitive in a single transaction."""
    primitive: str
    statements: list[Statement] = field(default_factory=list)
    text: str = ""


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of descriptor validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Diff Results ---

@dataclass
class PrimitiveChange:
    """A single primitive change."""
    name: str
    change_type: ChangeType
    changed_fields: list[str] = field(default_factory=list)
    promotion_removed: bool = False


@dataclass
class DiffResult:
    """Result of diffing desired vs discovered primitives."""
    changes: list[PrimitiveChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        """Check if there are any changes."""
        return all(c.change_type == ChangeType.NO_CHANGE for c in self.changes)

    @property
    def total_changes(self) -> int:
        """Total number of changes."""
        return sum(1 for c in self.changes if c.change_type != ChangeType.NO_CHANGE)


# --- Reconcile Results ---

@dataclass
class ReconcileOptions:
    """Options for a reconciliation run."""
    dry_run: bool = False
    cib: Optional[str] = None
    audit_context: str = ""
    user: Optional[str] = None


@dataclass
class ReconcileResult:
    """Result of a reconciliation run."""
    success: bool = False
    dry_run: bool = False
    changes_made: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)
    error: Optional[str] = None
    error_context: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "changes_made": self.changes_made,
            "statements": self.statements,
            "error": self.error,
            "error_context": self.error_context,
        }
