"""Tests for the validator, diff engine and staged state."""
import pytest

from crmsync.config_engine import (
    ChangeType,
    DesiredPrimitive,
    DiffEngine,
    Ensure,
    PrimitiveDescriptor,
    PrimitiveValidator,
    StagedPrimitive,
    StagedState,
    summarize_diff,
)


def make(name="web1", **kwargs):
    defaults = dict(
        resource_class="ocf",
        resource_provider="heartbeat",
        resource_type="IPaddr2",
        parameters={"ip": "10.0.0.5"},
    )
    defaults.update(kwargs)
    return PrimitiveDescriptor(name=name, **defaults)


class TestPrimitiveDescriptor:
    """Tests for descriptor helpers."""

    def test_agent_with_provider(self):
        assert make().agent == "ocf:heartbeat:IPaddr2"

    def test_agent_without_provider(self):
        primitive = PrimitiveDescriptor(name="cron", resource_class="lsb", resource_type="cron")

        assert primitive.agent == "lsb:cron"

    def test_wrapper_name(self):
        assert make("db").promotion_wrapper_name == "ms_db"

    def test_to_dict_hides_ms_metadata_unless_promotable(self):
        """ms_metadata only appears for promotable primitives."""
        assert "ms_metadata" not in make().to_dict()
        assert make(promotable=True).to_dict()["ms_metadata"] == {}

    def test_equality_ignores_key_order(self):
        """Descriptors compare equal modulo map ordering."""
        assert make(parameters={"a": "1", "b": "2"}) == make(parameters={"b": "2", "a": "1"})


class TestStagedState:
    """Tests for StagedState."""

    def test_stage_get_discard(self):
        staged = StagedState()
        entry = StagedPrimitive(descriptor=make(), cib="shadow1")

        staged.stage(entry)

        assert "web1" in staged
        assert staged.get("web1") is entry
        assert staged.names() == ["web1"]

        staged.discard("web1")

        assert len(staged) == 0
        assert staged.get("web1") is None

    def test_discard_unknown(self):
        """Discarding an unknown name is harmless."""
        StagedState().discard("nope")


class TestPrimitiveValidator:
    """Tests for PrimitiveValidator."""

    def test_valid(self):
        result = PrimitiveValidator().validate([DesiredPrimitive(make())])

        assert result.valid
        assert result.errors == []

    def test_duplicate_names(self):
        result = PrimitiveValidator().validate([DesiredPrimitive(make()), DesiredPrimitive(make())])

        assert not result.valid
        assert any("Duplicate" in e for e in result.errors)

    def test_missing_type(self):
        result = PrimitiveValidator().validate([DesiredPrimitive(make(resource_type=""))])

        assert not result.valid

    def test_absent_needs_only_name(self):
        """Absent primitives are not checked for class or type."""
        absent = PrimitiveDescriptor(name="old", resource_class="", resource_type="")

        result = PrimitiveValidator().validate([DesiredPrimitive(absent, ensure=Ensure.ABSENT)])

        assert result.valid

    def test_invalid_name(self):
        result = PrimitiveValidator().validate([DesiredPrimitive(make("1 bad"))])

        assert any("Invalid primitive name" in e for e in result.errors)

    def test_ocf_requires_provider(self):
        result = PrimitiveValidator().validate([DesiredPrimitive(make(resource_provider=None))])

        assert any("provider" in e for e in result.errors)

    def test_invalid_keys(self):
        primitive = make(
            parameters={"bad key": "x"},
            operations={"monitor": {"id": "m1"}},
        )

        result = PrimitiveValidator().validate([DesiredPrimitive(primitive)])

        assert len(result.errors) == 2

    def test_line_break_in_values(self):
        """Values that would split the statement are errors wherever they appear."""
        primitive = make(
            parameters={"script": "line1\nline2"},
            operations={"monitor": {"timeout": "20s\r"}},
            promotable=True,
            promotion_metadata={"notify": "true\nmaster-max=2"},
        )

        result = PrimitiveValidator().validate([DesiredPrimitive(primitive)])

        assert not result.valid
        assert result.errors == [
            "web1: line break in parameter value 'script'",
            "web1: line break in operation monitor value 'timeout'",
            "web1: line break in ms_metadata value 'notify'",
        ]

    def test_warns_on_unused_ms_metadata(self):
        """Wrapper metadata on a non-promotable primitive is a warning."""
        primitive = make(promotion_metadata={"notify": "true"})

        result = PrimitiveValidator().validate([DesiredPrimitive(primitive)])

        assert result.valid
        assert any("ms_metadata" in w for w in result.warnings)

    def test_warns_on_unknown_class(self):
        primitive = make(resource_class="custom", resource_provider=None)

        result = PrimitiveValidator().validate([DesiredPrimitive(primitive)])

        assert result.valid
        assert result.warnings


class TestDiffEngine:
    """Tests for DiffEngine."""

    def test_create(self):
        diff = DiffEngine().calculate([], [DesiredPrimitive(make())])

        assert diff.changes[0].change_type == ChangeType.CREATE
        assert diff.total_changes == 1

    def test_no_change(self):
        diff = DiffEngine().calculate([make()], [DesiredPrimitive(make())])

        assert diff.no_change
        assert diff.total_changes == 0

    def test_modify_lists_fields(self):
        current = make()
        desired = make(parameters={"ip": "10.0.0.6"}, metadata={"target-role": "Stopped"})

        diff = DiffEngine().calculate([current], [DesiredPrimitive(desired)])

        change = diff.changes[0]
        assert change.change_type == ChangeType.MODIFY
        assert change.changed_fields == ["parameters", "metadata"]
        assert change.promotion_removed is False

    def test_promotion_removed(self):
        current = make(promotable=True, promotion_metadata={"notify": "true"})

        change = DiffEngine().diff_primitive(DesiredPrimitive(make()), current)

        assert change.changed_fields == ["promotable"]
        assert change.promotion_removed is True

    def test_ms_metadata_compared_when_promotable(self):
        current = make(promotable=True, promotion_metadata={"notify": "true"})
        desired = make(promotable=True, promotion_metadata={"notify": "false"})

        change = DiffEngine().diff_primitive(DesiredPrimitive(desired), current)

        assert change.changed_fields == ["ms_metadata"]

    @pytest.mark.parametrize("exists,expected", [
        (True, ChangeType.DELETE),
        (False, ChangeType.NO_CHANGE),
    ])
    def test_absent(self, exists, expected):
        current = [make()] if exists else []
        desired = DesiredPrimitive(make(), ensure=Ensure.ABSENT)

        diff = DiffEngine().calculate(current, [desired])

        assert diff.changes[0].change_type == expected

    def test_undeclared_primitives_ignored(self):
        """Primitives only present in the cluster are left alone."""
        diff = DiffEngine().calculate([make("other")], [DesiredPrimitive(make())])

        assert [c.name for c in diff.changes] == ["web1"]

    def test_summary(self):
        current = [make("web1"), make("old")]
        desired = [
            DesiredPrimitive(make("web1", parameters={"ip": "10.0.0.6"})),
            DesiredPrimitive(make("new")),
            DesiredPrimitive(make("old"), ensure=Ensure.ABSENT),
        ]

        summary = summarize_diff(DiffEngine().calculate(current, desired))

        assert "3 total" in summary
        assert "[~] Modify primitive web1" in summary
        assert "[+] Create primitive new" in summary
        assert "[-] Delete primitive old" in summary

    def test_summary_no_change(self):
        summary = summarize_diff(DiffEngine().calculate([make()], [DesiredPrimitive(make())]))

        assert summary.startswith("No changes needed")
