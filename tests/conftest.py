"""Shared fixtures: a recording crm runner and CIB document builders."""
from pathlib import Path
from typing import Mapping, Optional, Sequence

import pytest
from lxml import etree

from crmsync.config_engine import PrimitiveController, PrimitiveDescriptor
from crmsync.utils import CommandResult, CrmShell


SAMPLE_CIB = b"""<?xml version="1.0" ?>
<cib epoch="12" num_updates="0" admin_epoch="0" validate-with="pacemaker-1.2">
  <configuration>
    <crm_config/>
    <nodes/>
    <resources>
      <primitive id="web1" class="ocf" provider="heartbeat" type="IPaddr2">
        <instance_attributes id="web1-instance_attributes">
          <nvpair id="web1-instance_attributes-ip" name="ip" value="10.0.0.5"/>
          <nvpair id="web1-instance_attributes-cidr_netmask" name="cidr_netmask" value="24"/>
        </instance_attributes>
        <operations>
          <op id="web1-monitor-10s" name="monitor" interval="10s" timeout="20s"/>
          <op id="web1-start-0" name="start" interval="0" timeout="60s"/>
        </operations>
        <meta_attributes id="web1-meta_attributes">
          <nvpair id="web1-meta_attributes-target-role" name="target-role" value="Started"/>
        </meta_attributes>
      </primitive>
      <master id="ms_db">
        <meta_attributes id="ms_db-meta_attributes">
          <nvpair id="ms_db-meta_attributes-master-max" name="master-max" value="1"/>
          <nvpair id="ms_db-meta_attributes-notify" name="notify" value="true"/>
        </meta_attributes>
        <primitive id="db" class="ocf" provider="linbit" type="drbd">
          <instance_attributes id="db-instance_attributes">
            <nvpair id="db-instance_attributes-drbd_resource" name="drbd_resource" value="r0"/>
          </instance_attributes>
          <meta_attributes id="db-meta_attributes">
            <nvpair id="db-meta_attributes-is-managed" name="is-managed" value="true"/>
          </meta_attributes>
        </primitive>
      </master>
      <group id="grp">
        <primitive id="cron" class="lsb" type="cron"/>
      </group>
    </resources>
    <constraints/>
  </configuration>
  <status/>
</cib>
"""


class FakeRunner:
    """CommandRunner that records calls and returns scripted results.

    Scripts are keyed by the command without its binary, e.g.
    "resource stop web1"; a key also matches commands it prefixes.
    """

    def __init__(self):
        self.calls: list[tuple[list[str], dict[str, str]]] = []
        self.loaded: list[str] = []
        self.loaded_paths: list[Path] = []
        self._scripts: dict[str, list[tuple[int, bytes]]] = {}

    def script(self, command: str, *results: tuple[int, bytes]) -> None:
        """Queue results for a command; the last one repeats."""
        self._scripts[command] = list(results)

    def fail(self, command: str, exit_status: int = 1) -> None:
        self.script(command, (exit_status, b""))

    def run(
        self,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        args = list(args)
        self.calls.append((args, dict(env or {})))

        if args[1:4] == ["configure", "load", "update"]:
            path = Path(args[4])
            self.loaded_paths.append(path)
            if path.exists():
                self.loaded.append(path.read_text())

        command = " ".join(args[1:])
        exit_status, stdout = 0, b""
        for prefix, results in self._scripts.items():
            if command == prefix or command.startswith(prefix + " "):
                if len(results) > 1:
                    exit_status, stdout = results.pop(0)
                else:
                    exit_status, stdout = results[0]
                break

        stderr = b"ERROR: rejected by crm" if exit_status else b""
        return CommandResult(args, exit_status, stdout, stderr)

    @property
    def commands(self) -> list[str]:
        """Recorded commands without the binary."""
        return [" ".join(args[1:]) for args, _ in self.calls]


def _add_nvpairs(parent, tag: str, owner: str, pairs: dict[str, str]) -> None:
    if not pairs:
        return
    attributes = etree.SubElement(parent, tag, id=f"{owner}-{tag}")
    for name, value in pairs.items():
        etree.SubElement(
            attributes, "nvpair",
            id=f"{owner}-{tag}-{name}", name=name, value=value,
        )


def build_cib(*primitives: PrimitiveDescriptor) -> bytes:
    """Build a CIB document holding the given primitives."""
    cib = etree.Element("cib")
    configuration = etree.SubElement(cib, "configuration")
    resources = etree.SubElement(configuration, "resources")

    for primitive in primitives:
        parent = resources
        if primitive.promotable:
            parent = etree.SubElement(resources, "master", id=primitive.promotion_wrapper_name)
            _add_nvpairs(parent, "meta_attributes", parent.get("id"), primitive.promotion_metadata)

        element = etree.SubElement(parent, "primitive", id=primitive.name)
        element.set("class", primitive.resource_class)
        if primitive.resource_provider:
            element.set("provider", primitive.resource_provider)
        element.set("type", primitive.resource_type)

        _add_nvpairs(element, "instance_attributes", primitive.name, primitive.parameters)
        _add_nvpairs(element, "meta_attributes", primitive.name, primitive.metadata)

        if primitive.operations:
            operations = etree.SubElement(element, "operations")
            for op_name, attributes in primitive.operations.items():
                op = etree.SubElement(
                    operations, "op", id=f"{primitive.name}-{op_name}", name=op_name
                )
                for key, value in attributes.items():
                    op.set(key, value)

    return etree.tostring(cib, xml_declaration=True, encoding="UTF-8")


@pytest.fixture
def runner():
    """A fresh recording runner."""
    return FakeRunner()


@pytest.fixture
def shell(runner):
    return CrmShell(runner=runner)


@pytest.fixture
def controller(shell):
    """Controller without a readiness gate."""
    return PrimitiveController(shell)


@pytest.fixture
def web1():
    return PrimitiveDescriptor(
        name="web1",
        resource_class="ocf",
        resource_provider="heartbeat",
        resource_type="IPaddr2",
        parameters={"ip": "10.0.0.5"},
        operations={"monitor": {"interval": "10s"}},
    )
