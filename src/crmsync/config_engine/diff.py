"""Diff engine for comparing desired primitives with discovered ones.

Decides per primitive whether it has to be created, re-declared, deleted,
or left alone.
"""
from typing import Iterable, Optional

from .schema import (
    ChangeType,
    DesiredPrimitive,
    DiffResult,
    Ensure,
    PrimitiveChange,
    PrimitiveDescriptor,
)

# Fields compared one to one
COMPARED_FIELDS = (
    ("class", "resource_class"),
    ("provider", "resource_provider"),
    ("type", "resource_type"),
    ("parameters", "parameters"),
    ("operations", "operations"),
    ("metadata", "metadata"),
    ("promotable", "promotable"),
)


class DiffEngine:
    """Calculate differences between desired and discovered primitives."""

    def calculate(
        self,
        current: Iterable[PrimitiveDescriptor],
        desired: Iterable[DesiredPrimitive]
    ) -> DiffResult:
        """
        Calculate the diff for every desired primitive.

        Primitives present in the cluster but not declared are left alone.

        Args:
            current: Descriptors discovered from the cluster
            desired: Declared primitives

        Returns:
            DiffResult with one change per desired primitive
        """
        current_map = {p.name: p for p in current}

        result = DiffResult()
        for item in desired:
            result.changes.append(
                self.diff_primitive(item, current_map.get(item.name))
            )
        return result

    def diff_primitive(
        self,
        desired: DesiredPrimitive,
        current: Optional[PrimitiveDescriptor]
    ) -> PrimitiveChange:
        """Calculate the change needed for a single primitive."""
        name = desired.name

        if desired.ensure == Ensure.ABSENT:
            if current is None:
                return PrimitiveChange(name=name, change_type=ChangeType.NO_CHANGE)
            return PrimitiveChange(name=name, change_type=ChangeType.DELETE)

        if current is None:
            return PrimitiveChange(name=name, change_type=ChangeType.CREATE)

        wanted = desired.descriptor
        changed = [
            label
            for label, attr in COMPARED_FIELDS
            if getattr(wanted, attr) != getattr(current, attr)
        ]

        # Wrapper metadata only matters while the primitive stays promotable
        if wanted.promotable and wanted.promotion_metadata != current.promotion_metadata:
            changed.append("ms_metadata")

        if not changed:
            return PrimitiveChange(name=name, change_type=ChangeType.NO_CHANGE)

        return PrimitiveChange(
            name=name,
            change_type=ChangeType.MODIFY,
            changed_fields=changed,
            promotion_removed=current.promotable and not wanted.promotable,
        )


def summarize_diff(diff: DiffResult) -> str:
    """
    Create a human-readable summary of a diff.

    Useful for dry-run output and logging.
    """
    if diff.no_change:
        return "No changes needed - cluster configuration matches desired state"

    lines = [f"Changes to apply ({diff.total_changes} total):", ""]

    for change in diff.changes:
        if change.change_type == ChangeType.CREATE:
            lines.append(f"  [+] Create primitive {change.name}")
        elif change.change_type == ChangeType.DELETE:
            lines.append(f"  [-] Delete primitive {change.name}")
        elif change.change_type == ChangeType.MODIFY:
            lines.append(f"  [~] Modify primitive {change.name}")
            lines.append(f"      Changed: {', '.join(change.changed_fields)}")
            if change.promotion_removed:
                lines.append(f"      Remove master/slave wrapper ms_{change.name}")

    return "\n".join(lines)
