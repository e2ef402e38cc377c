"""Config Engine - declarative management of cluster primitives.

The Config Engine reconciles declared primitives against the live
cluster configuration:
- Parse the CIB XML into primitive descriptors
- Diff desired against discovered primitives
- Render crm statements in the fixed clause order
- Apply each primitive as one `crm configure load update` transaction

Usage:
    from crmsync.config_engine import PrimitiveController, StagedState

    controller = PrimitiveController.from_settings(settings)
    staged = StagedState()
    controller.create(descriptor, staged)
    controller.flush(descriptor.name, staged)
"""

from .engine import PrimitiveController, SequencingError
from .schema import (
    PrimitiveDescriptor,
    DesiredPrimitive,
    Ensure,
    StagedPrimitive,
    StagedState,
    Clause,
    ClauseKind,
    Statement,
    ConfigurationUpdate,
    ValidationResult,
    DiffResult,
    PrimitiveChange,
    ChangeType,
    ReconcileOptions,
    ReconcileResult,
    promotion_wrapper_name,
)
from .parser import CibParser, ParseError
from .validator import PrimitiveValidator, ValidationError, require_identity
from .diff import DiffEngine, summarize_diff
from .generator import StatementBuilder, format_value
from .executor import ConfigExecutor, FlushError

__all__ = [
    # Controller
    "PrimitiveController",
    "SequencingError",
    # Schema classes
    "PrimitiveDescriptor",
    "DesiredPrimitive",
    "Ensure",
    "StagedPrimitive",
    "StagedState",
    "Clause",
    "ClauseKind",
    "Statement",
    "ConfigurationUpdate",
    "ValidationResult",
    "DiffResult",
    "PrimitiveChange",
    "ChangeType",
    "ReconcileOptions",
    "ReconcileResult",
    "promotion_wrapper_name",
    # Parser
    "CibParser",
    "ParseError",
    # Components (for advanced use)
    "PrimitiveValidator",
    "ValidationError",
    "require_identity",
    "DiffEngine",
    "summarize_diff",
    "StatementBuilder",
    "format_value",
    "ConfigExecutor",
    "FlushError",
]
