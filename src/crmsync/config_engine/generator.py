"""Statement builder for the crm configuration language.

Turns a staged primitive into the statements `crm configure load update`
ingests. Clause order is fixed because crm parses statements linearly:
header, operations, parameters, metadata, then the promotion wrapper on
its own line.
"""
import re

from .schema import (
    Clause,
    ClauseKind,
    ConfigurationUpdate,
    PrimitiveDescriptor,
    Statement,
)

# Values matching this are written without quotes
BARE_VALUE = re.compile(r"^[^\s\"'\\]+$")

# A statement must stay on one line
LINE_BREAK = re.compile(r"[\r\n]")


def format_value(value: str) -> str:
    """
    Quote a value for the crm shell when it needs it.

    Examples:
        "10s" -> 10s
        "a b" -> "a b"
        ""    -> ""

    Raises:
        ValueError: If the value contains a line break
    """
    if LINE_BREAK.search(value):
        raise ValueError(f"Line break in value {value!r}")
    if BARE_VALUE.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_clause(clause: Clause) -> str:
    """Render one clause: keywords then sorted key=value pairs."""
    parts = list(clause.keywords)
    for key in sorted(clause.attributes):
        parts.append(f"{key}={format_value(clause.attributes[key])}")
    return " ".join(parts)


def render_statement(statement: Statement) -> str:
    return " ".join(render_clause(c) for c in statement.clauses)


class StatementBuilder:
    """Build configuration statements from primitive descriptors."""

    def build(self, primitive: PrimitiveDescriptor) -> ConfigurationUpdate:
        """
        Build the complete update for one primitive.

        Args:
            primitive: Desired state of the primitive

        Returns:
            ConfigurationUpdate with the primitive statement and, when
            promotable, the master/slave wrapper statement
        """
        statements = [self._primitive_statement(primitive)]

        if primitive.promotable:
            statements.append(self._promotion_statement(primitive))

        text = "\n".join(render_statement(s) for s in statements) + "\n"

        return ConfigurationUpdate(
            primitive=primitive.name,
            statements=statements,
            text=text,
        )

    def render(self, primitive: PrimitiveDescriptor) -> str:
        """Statement text for a primitive."""
        return self.build(primitive).text

    def _primitive_statement(self, primitive: PrimitiveDescriptor) -> Statement:
        statement = Statement()

        statement.clauses.append(Clause(
            kind=ClauseKind.HEADER,
            keywords=["primitive", primitive.name, primitive.agent],
        ))

        for op_name in sorted(primitive.operations):
            statement.clauses.append(Clause(
                kind=ClauseKind.OPERATION,
                keywords=["op", op_name],
                attributes=dict(primitive.operations[op_name]),
            ))

        if primitive.parameters:
            statement.clauses.append(Clause(
                kind=ClauseKind.PARAMETERS,
                keywords=["params"],
                attributes=dict(primitive.parameters),
            ))

        if primitive.metadata:
            statement.clauses.append(Clause(
                kind=ClauseKind.METADATA,
                keywords=["meta"],
                attributes=dict(primitive.metadata),
            ))

        return statement

    def _promotion_statement(self, primitive: PrimitiveDescriptor) -> Statement:
        """The ms wrapper statement; only called for promotable primitives."""
        statement = Statement()

        statement.clauses.append(Clause(
            kind=ClauseKind.PROMOTION,
            keywords=["ms", primitive.promotion_wrapper_name, primitive.name],
        ))

        if primitive.promotion_metadata:
            statement.clauses.append(Clause(
                kind=ClauseKind.METADATA,
                keywords=["meta"],
                attributes=dict(primitive.promotion_metadata),
            ))

        return statement
