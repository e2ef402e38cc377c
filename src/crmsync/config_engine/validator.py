"""Pre-flight validation for desired primitives.

Catches identity and attribute errors before any cluster communication.
"""
import re
from typing import Iterable, Optional

from .schema import (
    DesiredPrimitive,
    Ensure,
    PrimitiveDescriptor,
    ValidationResult,
)

# XML ID syntax the cluster manager enforces on resource ids
ID_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")

# Attribute keys cannot carry clause separators
KEY_PATTERN = re.compile(r"^[^\s=\"']+$")

# Values must not split a statement across lines
LINE_BREAK = re.compile(r"[\r\n]")

KNOWN_CLASSES = {"ocf", "lsb", "systemd", "service", "stonith", "upstart", "nagios"}


class ValidationError(Exception):
    """A primitive is missing mandatory identity fields."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


def require_identity(descriptor: PrimitiveDescriptor) -> None:
    """
    Check the fields a primitive cannot be staged without.

    Raises:
        ValidationError: If name, class or type is empty
    """
    if not descriptor.name:
        raise ValidationError("Primitive name must not be empty", field="name")
    if not descriptor.resource_class:
        raise ValidationError(
            f"Primitive {descriptor.name} has no resource class", field="class"
        )
    if not descriptor.resource_type:
        raise ValidationError(
            f"Primitive {descriptor.name} has no resource type", field="type"
        )


class PrimitiveValidator:
    """Validate desired primitives for logical errors before execution."""

    def validate(self, desired: Iterable[DesiredPrimitive]) -> ValidationResult:
        """
        Validate a batch of desired primitives.

        Performs pre-flight checks:
        - Identity fields present and well formed
        - Unique names
        - Attribute keys usable in a crm statement
        - Values without line breaks
        - Promotion metadata only on promotable primitives

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []
        seen: set[str] = set()

        for item in desired:
            primitive = item.descriptor

            if primitive.name in seen:
                errors.append(f"Duplicate primitive: {primitive.name}")
            seen.add(primitive.name)

            # Deleting only needs the name
            if item.ensure == Ensure.ABSENT:
                if not primitive.name:
                    errors.append("Primitive name must not be empty")
                continue

            try:
                require_identity(primitive)
            except ValidationError as e:
                errors.append(str(e))
                continue

            self._validate_primitive(primitive, errors, warnings)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def _validate_primitive(
        self,
        primitive: PrimitiveDescriptor,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        name = primitive.name

        if not ID_PATTERN.match(name):
            errors.append(f"Invalid primitive name: {name!r}")

        if primitive.resource_class not in KNOWN_CLASSES:
            warnings.append(
                f"{name}: unknown resource class '{primitive.resource_class}'"
            )

        if primitive.resource_class == "ocf" and not primitive.resource_provider:
            errors.append(f"{name}: ocf resources require a provider")

        for label, attributes in (
            ("parameter", primitive.parameters),
            ("metadata", primitive.metadata),
        ):
            for key in attributes:
                if not KEY_PATTERN.match(key):
                    errors.append(f"{name}: invalid {label} key {key!r}")

        for op_name, op_attributes in primitive.operations.items():
            if not KEY_PATTERN.match(op_name):
                errors.append(f"{name}: invalid operation name {op_name!r}")
            for key in op_attributes:
                if key in ("id", "name") or not KEY_PATTERN.match(key):
                    errors.append(f"{name}: invalid attribute {key!r} on operation {op_name}")

        value_sets = [
            ("parameter", primitive.parameters),
            ("metadata", primitive.metadata),
        ]
        value_sets.extend(
            (f"operation {op_name}", attrs) for op_name, attrs in primitive.operations.items()
        )
        if primitive.promotable:
            value_sets.append(("ms_metadata", primitive.promotion_metadata))
        for label, attributes in value_sets:
            for key, value in attributes.items():
                if LINE_BREAK.search(value):
                    errors.append(f"{name}: line break in {label} value {key!r}")

        if primitive.promotion_metadata and not primitive.promotable:
            warnings.append(
                f"{name}: ms_metadata is ignored because the primitive is not promotable"
            )
