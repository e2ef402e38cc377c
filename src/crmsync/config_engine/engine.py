"""Primitive controller - discovery, staging and flushing of primitives.

Provides the lifecycle operations for cluster primitives:
1. Discovering primitives from the live configuration
2. Staging desired values (no cluster contact)
3. Destroying primitives (stop, then delete)
4. Toggling the master/slave wrapper
5. Flushing staged values as one `load update` transaction

`reconcile` chains these for a whole manifest.
"""
import copy
import logging
from typing import Iterable, Optional

from ..config.settings import Settings
from ..utils.command import CommandError, CommandRunner, CrmShell, SubprocessRunner
from ..utils.logging_config import timed, timed_section
from ..utils.readiness import ClusterNotReadyError, ReadinessGate
from .diff import DiffEngine, summarize_diff
from .executor import ConfigExecutor
from .generator import StatementBuilder
from .parser import CibParser, ParseError
from .schema import (
    ChangeType,
    ConfigurationUpdate,
    DesiredPrimitive,
    PrimitiveDescriptor,
    ReconcileOptions,
    ReconcileResult,
    StagedPrimitive,
    StagedState,
    promotion_wrapper_name,
)
from .validator import PrimitiveValidator, ValidationError, require_identity

logger = logging.getLogger(__name__)


class SequencingError(CommandError):
    """The stop step failed, so the delete step was never issued."""

    def __init__(self, target: str, stop_error: CommandError):
        self.target = target
        self.stop_error = stop_error
        super().__init__(
            stop_error.command,
            stop_error.exit_status,
            stop_error.stdout,
            stop_error.stderr,
            message=f"Not deleting {target}: stop failed: {stop_error}",
        )


class PrimitiveController:
    """
    Lifecycle operations for cluster primitives.

    Usage:
        controller = PrimitiveController.from_settings(Settings.load())
        staged = StagedState()
        controller.create(descriptor, staged)
        controller.flush(descriptor.name, staged)

    Staged state is always owned by the caller. The controller keeps none
    between calls, and callers must not flush the same name concurrently.
    """

    def __init__(
        self,
        shell: CrmShell,
        readiness: Optional[ReadinessGate] = None,
        executor: Optional[ConfigExecutor] = None,
        default_cib: Optional[str] = None,
    ):
        """
        Initialize the controller.

        Args:
            shell: crm shell wrapper for all external calls
            readiness: Gate waited on before discovery (optional)
            executor: Executor for flushes (defaults to one on `shell`)
            default_cib: Shadow used when neither the call nor the staged
                entry names one
        """
        self.shell = shell
        self.readiness = readiness
        self.default_cib = default_cib
        self.parser = CibParser()
        self.builder = StatementBuilder()
        self.validator = PrimitiveValidator()
        self.diff_engine = DiffEngine()
        self.executor = executor or ConfigExecutor(shell)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        runner: Optional[CommandRunner] = None
    ) -> "PrimitiveController":
        """Build a controller wired up from settings."""
        shell = CrmShell(
            runner=runner or SubprocessRunner(),
            crm_binary=settings.crm_binary,
            crm_attribute_binary=settings.crm_attribute_binary,
        )
        readiness = None
        if settings.wait_for_ready:
            readiness = ReadinessGate(
                shell,
                timeout=settings.ready_timeout,
                interval=settings.ready_interval,
            )
        executor = ConfigExecutor(
            shell,
            tempfile_prefix=settings.tempfile_prefix,
            audit_log_path=settings.audit_log_path,
        )
        return cls(
            shell,
            readiness=readiness,
            executor=executor,
            default_cib=settings.cib_shadow,
        )

    # === Discovery ===

    def instances(self) -> list[PrimitiveDescriptor]:
        """
        Discover every primitive in the live configuration.

        Raises:
            ClusterNotReadyError: If the readiness gate times out
            CommandError: If the configuration query fails
            ParseError: If the document is malformed
            ValidationError: If a primitive lacks identity attributes
        """
        if self.readiness is not None:
            self.readiness.wait()

        with timed_section("discover"):
            raw = self.shell.show_xml()
            return self.parser.parse(raw)

    # === Staging ===

    def create(
        self,
        desired: PrimitiveDescriptor,
        staged: StagedState,
        cib: Optional[str] = None
    ) -> StagedPrimitive:
        """
        Stage a primitive for the next flush. Never contacts the cluster.

        Raises:
            ValidationError: If name, class or type is missing
        """
        require_identity(desired)

        descriptor = copy.deepcopy(desired)
        if not descriptor.promotable:
            descriptor.promotion_metadata = {}

        entry = StagedPrimitive(descriptor=descriptor, cib=cib)
        staged.stage(entry)
        logger.debug(f"Staged primitive {descriptor.name}")
        return entry

    # === Lifecycle ===

    @timed("destroy")
    def destroy(self, name: str, staged: StagedState) -> None:
        """
        Stop a primitive, then delete its definition.

        The staged entry is only discarded once both steps succeeded.

        Raises:
            SequencingError: If stop failed (delete was not attempted)
            CommandError: If delete failed after a successful stop
        """
        self._stop_and_delete(name)
        staged.discard(name)

    @timed("promotable")
    def set_promotable(self, name: str, should: bool, staged: StagedState) -> None:
        """
        Record the desired promotable flag for a staged primitive.

        Turning promotion on only updates staged state; the wrapper appears
        on the next flush. Turning it off also stops and deletes the
        ms_<name> wrapper, never the primitive itself.

        Raises:
            KeyError: If promotion is turned on for a name with nothing staged
            SequencingError: If stopping the wrapper failed
            CommandError: If deleting the wrapper failed
        """
        if should and name not in staged:
            raise KeyError(f"Nothing staged for {name}; stage it before enabling promotion")

        if not should:
            self._stop_and_delete(promotion_wrapper_name(name))

        entry = staged.get(name)
        if entry is None:
            logger.debug(f"No staged values for {name}; wrapper removed only")
            return

        entry.descriptor.promotable = should
        if not should:
            entry.descriptor.promotion_metadata = {}

    def _stop_and_delete(self, target: str) -> None:
        """Stop then delete a configuration entry; no compensation on failure."""
        logger.info(f"Stopping {target} before removing it")
        try:
            self.shell.stop(target)
        except CommandError as e:
            raise SequencingError(target, e) from e

        logger.info(f"Removing {target}")
        self.shell.delete(target)

    # === Flush ===

    @timed("flush")
    def flush(self, name: str, staged: StagedState) -> Optional[ConfigurationUpdate]:
        """
        Apply the staged values of a primitive as one transaction.

        Returns:
            The applied update, or None when nothing was staged

        Raises:
            FlushError: If crm rejected the update (staged entry is kept)
            ValueError: If a staged value contains a line break
        """
        entry = staged.get(name)
        if entry is None:
            logger.debug(f"Nothing staged for {name}; flush skipped")
            return None

        update = self.builder.build(entry.descriptor)
        self.executor.apply(update, entry.cib or self.default_cib)

        staged.discard(name)
        return update

    def render(self, primitive: PrimitiveDescriptor) -> str:
        """Statement text for a primitive, without applying it."""
        return self.builder.render(primitive)

    # === Reconciliation ===

    def reconcile(
        self,
        desired: Iterable[DesiredPrimitive],
        options: Optional[ReconcileOptions] = None
    ) -> ReconcileResult:
        """
        Bring the cluster in line with a set of desired primitives.

        This is the main entry point. It:
        1. Validates the desired primitives
        2. Discovers the current primitives
        3. Calculates the diff
        4. Destroys, creates or re-declares each changed primitive

        Stops at the first failure; nothing is retried.

        Returns:
            ReconcileResult with success/failure and details
        """
        options = options or ReconcileOptions()
        desired = list(desired)
        result = ReconcileResult(dry_run=options.dry_run)

        validation = self.validator.validate(desired)
        if not validation.valid:
            result.error = f"Validation failed: {'; '.join(validation.errors)}"
            result.error_context = "\n".join(validation.errors)
            return result
        for warning in validation.warnings:
            logger.warning(warning)

        logger.info("Discovering current primitives")
        try:
            current = self.instances()
        except (ClusterNotReadyError, CommandError, ParseError, ValidationError) as e:
            result.error = f"Failed to get current configuration: {e}"
            if isinstance(e, CommandError):
                result.error_context = e.output
            return result

        diff = self.diff_engine.calculate(current, desired)
        if diff.no_change:
            result.success = True
            result.changes_made = ["No changes needed - configuration already matches"]
            return result

        logger.info(summarize_diff(diff))

        desired_map = {item.name: item for item in desired}
        staged = StagedState()

        for change in diff.changes:
            if change.change_type == ChangeType.NO_CHANGE:
                continue

            item = desired_map[change.name]
            cib = item.cib or options.cib

            try:
                if change.change_type == ChangeType.DELETE:
                    if options.dry_run:
                        result.changes_made.append(f"[PREVIEW] Delete primitive {change.name}")
                        continue
                    self.destroy(change.name, staged)
                    result.changes_made.append(f"Deleted primitive {change.name}")
                    continue

                entry = self.create(item.descriptor, staged, cib=cib)
                result.statements.append(self.render(entry.descriptor))

                if change.change_type == ChangeType.CREATE:
                    description = f"Created primitive {change.name}"
                else:
                    description = (
                        f"Modified primitive {change.name}: "
                        f"{', '.join(change.changed_fields)}"
                    )

                if options.dry_run:
                    staged.discard(change.name)
                    result.changes_made.append(f"[PREVIEW] {description}")
                    continue

                if change.promotion_removed:
                    self.set_promotable(change.name, False, staged)
                self.flush(change.name, staged)
                result.changes_made.append(description)

            except CommandError as e:
                logger.error(f"Reconciling {change.name} failed: {e}")
                result.error = f"{change.change_type.value} {change.name} failed: {e}"
                result.error_context = e.output
                return result

        result.success = True
        return result
