import logging
import signal
import time
from enum import Enum
from typing import Callable, Optional

from shared.contracts.watchdog_contracts import MetricsSnapshot, WatchdogConfig
from src.watchdog.cgroups.memory_accountant import MemoryAccountant
from src.watchdog.errors import AccountingError, MetricsPublishError, VolumeQueryError
from src.watchdog.exporter.metrics_exporter import MetricsExporter
from src.watchdog.process.terminator import terminate_all
from src.watchdog.volume.volume_accountant import VolumeAccountant

logger = logging.getLogger(__name__)


class ExitReason(Enum):
    VOLUME_EXHAUSTED = 138       # SIGUSR1
    TERMINATION_REQUESTED = 130  # SIGTERM / SIGINT
    INTERNAL_ERROR = -1

    @property
    def exit_code(self) -> int:
        return self.value


class WatchdogState(Enum):
    INITIALIZING = "initializing"
    POLLING = "polling"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class TerminationToken:
    """Set once from a signal handler, observed once per tick by the loop."""

    def __init__(self):
        self._requested = False

    def request(self) -> None:
        # plain attribute store: safe to repeat from a nested signal handler
        self._requested = True

    @property
    def requested(self) -> bool:
        return self._requested


class WatchdogLoop:
    def __init__(
        self,
        config: WatchdogConfig,
        memory: MemoryAccountant,
        volume: VolumeAccountant,
        exporter: MetricsExporter,
        token: TerminationToken,
        terminate: Callable[..., object] = terminate_all,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.memory = memory
        self.volume = volume
        self.exporter = exporter
        self.token = token
        self._terminate = terminate
        self._sleep = sleep
        self.state = WatchdogState.INITIALIZING
        self.exit_reason: Optional[ExitReason] = None

    def tick(self) -> Optional[ExitReason]:
        """Run one poll cycle. Returns an exit reason or None to keep polling."""
        try:
            tmpfs_usage = self.volume.usage_mb()
        except VolumeQueryError as e:
            logger.error("Failed to get tmpfs space usage. Reason - %s. Exiting...", e)
            return ExitReason.INTERNAL_ERROR

        try:
            mem_used_mb = self.memory.working_set_mb()
        except AccountingError as e:
            logger.error("Failed to get container memory usage. Reason - %s. Exiting...", e)
            return ExitReason.INTERNAL_ERROR

        try:
            self.exporter.publish(MetricsSnapshot(memory=mem_used_mb, tmpfs=tmpfs_usage.used))
        except MetricsPublishError as e:
            logger.error("%s. Exiting...", e)
            return ExitReason.INTERNAL_ERROR

        if tmpfs_usage.free < self.config.tmpfs_min_space_left_mb:
            logger.warning(
                "TmpFS is full: %d MB free, minimum is %d MB. Exiting...",
                tmpfs_usage.free, self.config.tmpfs_min_space_left_mb,
            )
            return ExitReason.VOLUME_EXHAUSTED

        if self.token.requested:
            logger.info("Caught termination signal. Exiting...")
            return ExitReason.TERMINATION_REQUESTED

        return None

    def poll(self) -> ExitReason:
        self.state = WatchdogState.POLLING
        interval = self.config.metrics_dump_interval_ms / 1000
        while True:
            reason = self.tick()
            if reason is not None:
                return reason
            self._sleep(interval)

    def shutdown(self, reason: ExitReason) -> None:
        self.state = WatchdogState.SHUTTING_DOWN
        runner_path = self.config.runner_binary_path
        logger.info("Stopping all processes with file path '%s'", runner_path)
        self._terminate(runner_path, signal.SIGTERM)

        logger.info("Delay before exit (%d s)...", self.config.grace_period_seconds)
        self._sleep(self.config.grace_period_seconds)

    def run(self) -> ExitReason:
        logger.info("Start monitoring")
        self.exit_reason = self.poll()
        self.shutdown(self.exit_reason)
        self.state = WatchdogState.TERMINATED
        logger.info("Exit. Reason - %s", self.exit_reason.name)
        return self.exit_reason
