"""Readiness gate: block until the cluster can answer configuration queries."""
import logging

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed,
)

from .command import CommandError, CrmShell

logger = logging.getLogger(__name__)


class ClusterNotReadyError(Exception):
    """Raised when the cluster never became ready within the timeout."""

    def __init__(self, timeout: float, last_error: Exception | None = None):
        self.timeout = timeout
        self.last_error = last_error
        message = f"Cluster not ready after {timeout}s"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)


class ReadinessGate:
    """Polls crm_attribute for dc-version until it succeeds."""

    def __init__(self, shell: CrmShell, timeout: float = 120, interval: float = 2):
        """
        Initialize the gate.

        Args:
            shell: crm shell used for the dc-version query
            timeout: Give up after this many seconds
            interval: Seconds between attempts
        """
        self.shell = shell
        self.timeout = timeout
        self.interval = interval

    def wait(self) -> None:
        """Block until the cluster is ready.

        Raises:
            ClusterNotReadyError: If the timeout elapses first
        """
        retrying = Retrying(
            stop=stop_after_delay(self.timeout),
            wait=wait_fixed(self.interval),
            retry=retry_if_exception_type(CommandError),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        try:
            for attempt in retrying:
                with attempt:
                    self.shell.query_dc_version()
        except RetryError as e:
            raise ClusterNotReadyError(self.timeout, e.last_attempt.exception()) from e

        logger.debug("Cluster is ready")
