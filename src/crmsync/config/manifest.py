"""Parser for declarative primitive manifests.

Converts dict/YAML input to DesiredPrimitive objects:

```yaml
primitives:
  web1:
    class: ocf
    provider: heartbeat
    type: IPaddr2
    parameters:
      ip: 10.0.0.5
    operations:
      monitor:
        interval: 10s
  db:
    class: ocf
    provider: heartbeat
    type: pgsql
    promotable: true
    ms_metadata:
      target-role: Started
  old-ip:
    ensure: absent
```
"""
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..config_engine.parser import ParseError
from ..config_engine.schema import DesiredPrimitive, Ensure, PrimitiveDescriptor
from ..config_engine.validator import ValidationError, require_identity


def to_str(value: Any) -> str:
    """Coerce a YAML scalar to the string crm expects."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


class ManifestParser:
    """Parse desired primitives from dict/YAML format."""

    def parse(self, config: dict[str, Any]) -> list[DesiredPrimitive]:
        """
        Parse a manifest dict into desired primitives.

        Args:
            config: Dict with a `primitives` mapping

        Returns:
            DesiredPrimitive objects in manifest order

        Raises:
            ParseError: If the structure is invalid
            ValidationError: If identity fields are missing
        """
        if not isinstance(config, dict):
            raise ParseError("Manifest must be a mapping")

        primitives = config.get("primitives")
        if primitives is None:
            raise ParseError("Missing required field: primitives")
        if not isinstance(primitives, dict):
            raise ParseError("'primitives' must be a mapping of name to definition")

        return [
            self._parse_single(str(name), definition)
            for name, definition in primitives.items()
        ]

    def parse_yaml(self, text: str) -> list[DesiredPrimitive]:
        """Parse a manifest from YAML text."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid manifest YAML: {e}") from e
        return self.parse(data or {})

    def parse_file(self, path: Union[str, Path]) -> list[DesiredPrimitive]:
        """Parse a manifest file."""
        return self.parse_yaml(Path(path).read_text())

    def _parse_single(
        self,
        name: str,
        config: Optional[dict[str, Any]]
    ) -> DesiredPrimitive:
        """Parse a single primitive definition."""
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ParseError(f"Definition of primitive {name} must be a mapping")

        ensure_str = str(config.get("ensure", "present"))
        try:
            ensure = Ensure(ensure_str)
        except ValueError:
            raise ParseError(
                f"Invalid ensure for primitive {name}: {ensure_str}. "
                f"Must be 'present' or 'absent'"
            )

        promotable = self._parse_bool(name, config.get("promotable", False))

        descriptor = PrimitiveDescriptor(
            name=name,
            resource_class=to_str(config.get("class")),
            resource_provider=to_str(config.get("provider")) or None,
            resource_type=to_str(config.get("type")),
            parameters=self._parse_pairs(name, "parameters", config.get("parameters")),
            operations=self._parse_operations(name, config.get("operations")),
            metadata=self._parse_pairs(name, "metadata", config.get("metadata")),
            promotable=promotable,
            promotion_metadata=(
                self._parse_pairs(name, "ms_metadata", config.get("ms_metadata"))
                if promotable else {}
            ),
        )

        # An absent primitive only needs its name
        if ensure == Ensure.PRESENT:
            require_identity(descriptor)
        elif not name:
            raise ValidationError("Primitive name must not be empty", field="name")

        cib = config.get("cib")
        return DesiredPrimitive(
            descriptor=descriptor,
            ensure=ensure,
            cib=to_str(cib) if cib else None,
        )

    def _parse_bool(self, name: str, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if str(value).lower() in ("true", "yes", "1"):
            return True
        if str(value).lower() in ("false", "no", "0", ""):
            return False
        raise ParseError(f"Invalid promotable value for primitive {name}: {value}")

    def _parse_pairs(
        self,
        name: str,
        label: str,
        pairs: Optional[dict[str, Any]]
    ) -> dict[str, str]:
        if pairs is None:
            return {}
        if not isinstance(pairs, dict):
            raise ParseError(f"{label} of primitive {name} must be a mapping")
        return {str(k): to_str(v) for k, v in pairs.items()}

    def _parse_operations(
        self,
        name: str,
        operations: Optional[dict[str, Any]]
    ) -> dict[str, dict[str, str]]:
        if operations is None:
            return {}
        if not isinstance(operations, dict):
            raise ParseError(f"operations of primitive {name} must be a mapping")
        return {
            str(op_name): self._parse_pairs(name, f"operation {op_name}", attributes)
            for op_name, attributes in operations.items()
        }
