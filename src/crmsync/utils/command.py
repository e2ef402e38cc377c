"""External control command interface for the crm shell.

The core only ever talks to the cluster through a CommandRunner, so tests
can substitute a recording fake for the real subprocess runner.
"""
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

# Environment variable crm reads to target a configuration shadow
CIB_SHADOW_ENV = "CIB_shadow"


class CommandError(Exception):
    """Raised when an external control command exits non-zero."""

    def __init__(
        self,
        args: Sequence[str],
        exit_status: int,
        stdout: bytes = b"",
        stderr: bytes = b"",
        message: Optional[str] = None,
    ):
        self.command = list(args)
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr
        output = (stderr or stdout).decode("utf-8", errors="replace").strip()
        super().__init__(message or (
            f"Command '{' '.join(self.command)}' failed with exit status "
            f"{exit_status}: {output}"
        ))

    @property
    def output(self) -> str:
        """Captured output, stderr first."""
        return (self.stderr or self.stdout).decode("utf-8", errors="replace")


@dataclass
class CommandResult:
    """Result of a command execution."""
    args: list[str]
    exit_status: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    def check(self) -> "CommandResult":
        """Raise CommandError unless the command succeeded."""
        if not self.success:
            raise CommandError(self.args, self.exit_status, self.stdout, self.stderr)
        return self

    def __repr__(self) -> str:
        status = "OK" if self.success else f"FAILED({self.exit_status})"
        return f"CommandResult({status}, args={' '.join(self.args)})"


class CommandRunner(Protocol):
    """Runs one external command and captures its output."""

    def run(
        self,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        ...


class SubprocessRunner:
    """CommandRunner backed by subprocess.

    `env` is overlaid on the current process environment.
    """

    def run(
        self,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        cmd = list(args)
        logger.debug(f"Running: {' '.join(cmd)}")

        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        completed = subprocess.run(
            cmd,
            capture_output=True,
            env=full_env,
            check=False,  # Exit status is handled by the caller
        )

        return CommandResult(
            args=cmd,
            exit_status=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


@dataclass
class CrmShell:
    """The crm subcommands the reconciler needs."""
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    crm_binary: str = "crm"
    crm_attribute_binary: str = "crm_attribute"

    def _crm(self, *args: str, env: Optional[Mapping[str, str]] = None) -> CommandResult:
        cmd = [self.crm_binary, *args]
        result = self.runner.run(cmd, env or {})
        if not result.success:
            logger.error(f"crm command failed: {' '.join(cmd)} (exit {result.exit_status})")
        return result.check()

    def show_xml(self) -> bytes:
        """Return the full cluster configuration as XML."""
        return self._crm("configure", "show", "xml").stdout

    def stop(self, name: str) -> CommandResult:
        return self._crm("resource", "stop", name)

    def delete(self, name: str) -> CommandResult:
        return self._crm("configure", "delete", name)

    def load_update(self, path: str, cib: Optional[str] = None) -> CommandResult:
        """Load a configuration update file, optionally into a shadow."""
        env = {CIB_SHADOW_ENV: cib} if cib else {}
        return self._crm("configure", "load", "update", path, env=env)

    def query_dc_version(self) -> CommandResult:
        """Query the designated controller version (succeeds once quorate)."""
        cmd = [
            self.crm_attribute_binary,
            "--type", "crm_config",
            "--query",
            "--name", "dc-version",
        ]
        return self.runner.run(cmd, {}).check()
