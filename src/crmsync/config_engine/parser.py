"""Parser for the cluster configuration document.

Converts the XML returned by `crm configure show xml` into
PrimitiveDescriptor objects.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from lxml import etree

from .schema import PrimitiveDescriptor
from .validator import ValidationError

logger = logging.getLogger(__name__)

PROMOTION_WRAPPER_TAG = "master"

# Attributes a primitive element cannot be modeled without
REQUIRED_PRIMITIVE_ATTRIBUTES = ("id", "class", "type")


class ParseError(Exception):
    """Error parsing the cluster configuration document."""
    pass


class CibParser:
    """Parse primitives out of a CIB XML document.

    A primitive with missing identity attributes aborts the whole parse;
    no partial list is ever returned.
    """

    def parse(self, raw: Union[bytes, str]) -> list[PrimitiveDescriptor]:
        """
        Parse a configuration document into primitive descriptors.

        Args:
            raw: XML document, as returned by the crm shell

        Returns:
            Descriptors in document order, including wrapped primitives

        Raises:
            ParseError: If the document is malformed
            ValidationError: If a primitive lacks id, class or type, or an
                id is used twice
        """
        root = self._load(raw)

        primitives = []
        seen: set[str] = set()
        for element in root.iter("primitive"):
            primitive = self._parse_primitive(element)
            if primitive.name in seen:
                raise ValidationError(
                    f"Duplicate primitive id: {primitive.name}", field="id"
                )
            seen.add(primitive.name)
            primitives.append(primitive)

        logger.debug(f"Parsed {len(primitives)} primitives")
        return primitives

    def parse_file(self, path: Union[str, Path]) -> list[PrimitiveDescriptor]:
        """Parse a configuration document saved on disk."""
        return self.parse(Path(path).read_bytes())

    def _load(self, raw: Union[bytes, str]) -> etree._Element:
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        if not raw.strip():
            raise ParseError("Empty configuration document")

        parser = etree.XMLParser(remove_comments=True, resolve_entities=False)
        try:
            return etree.fromstring(raw, parser)
        except etree.XMLSyntaxError as e:
            raise ParseError(f"Malformed configuration document: {e}") from e

    def _parse_primitive(self, element: etree._Element) -> PrimitiveDescriptor:
        """Build a descriptor from a single <primitive> element."""
        for attr in REQUIRED_PRIMITIVE_ATTRIBUTES:
            if not element.get(attr):
                where = element.get("id") or f"line {element.sourceline}"
                raise ValidationError(
                    f"Primitive at {where} is missing required attribute '{attr}'",
                    field=attr,
                )

        name = element.get("id")
        primitive = PrimitiveDescriptor(
            name=name,
            resource_class=element.get("class"),
            resource_provider=element.get("provider") or None,
            resource_type=element.get("type"),
            parameters=self._parse_nvpairs(element.find("instance_attributes")),
            metadata=self._parse_nvpairs(element.find("meta_attributes")),
            operations=self._parse_operations(name, element.find("operations")),
        )

        parent = element.getparent()
        if parent is not None and parent.tag == PROMOTION_WRAPPER_TAG:
            primitive.promotable = True
            # The wrapper's own meta_attributes, not the primitive's
            primitive.promotion_metadata = self._parse_nvpairs(
                parent.find("meta_attributes")
            )

        return primitive

    def _parse_nvpairs(self, attributes: Optional[etree._Element]) -> dict[str, str]:
        """Read name/value pairs from an attribute set element."""
        if attributes is None:
            return {}

        pairs = {}
        for nvpair in attributes.iterchildren("nvpair"):
            name = nvpair.get("name")
            if not name:
                raise ParseError(
                    f"nvpair without a name in {attributes.get('id') or attributes.tag}"
                )
            pairs[name] = nvpair.get("value", "")
        return pairs

    def _parse_operations(
        self,
        primitive: str,
        operations: Optional[etree._Element]
    ) -> dict[str, dict[str, str]]:
        """Read <op> entries keyed by name, without their id attribute."""
        if operations is None:
            return {}

        result = {}
        for op in operations.iterchildren("op"):
            op_name = op.get("name")
            if not op_name:
                raise ParseError(f"Operation without a name in primitive {primitive}")
            result[op_name] = {
                key: value
                for key, value in op.attrib.items()
                if key not in ("id", "name")
            }
        return result
