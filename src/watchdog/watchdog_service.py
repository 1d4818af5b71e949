import argparse
import logging
import os
import signal
import sys
import time
from typing import Callable, List, Optional

from shared.contracts.watchdog_contracts import Symlink, WatchdogConfig
from src.watchdog.cgroups.memory_accountant import CGROUP_MOUNT, MemoryAccountant
from src.watchdog.errors import ConfigurationError, WatchdogError
from src.watchdog.exporter.metrics_exporter import MetricsExporter
from src.watchdog.loop import ExitReason, TerminationToken, WatchdogLoop
from src.watchdog.volume.volume_accountant import VolumeAccountant

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def create_symlink(symlink: Symlink) -> None:
    try:
        os.remove(symlink.link)
    except FileNotFoundError:
        pass
    os.symlink(symlink.path, symlink.link)


def create_symlinks(symlinks: List[Symlink]) -> None:
    for symlink in symlinks:
        try:
            create_symlink(symlink)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to create symlink: '{symlink.link}' -> '{symlink.path}'. Reason - {e}"
            ) from e
        logger.info("Created symlink: '%s' -> '%s'", symlink.link, symlink.path)


def register_signals(token: TerminationToken) -> None:
    def _handle(signum, frame):
        token.request()

    for sig in TERMINATION_SIGNALS:
        signal.signal(sig, _handle)


def build_loop(
    config: WatchdogConfig,
    token: TerminationToken,
    cgroup_mount: str = CGROUP_MOUNT,
    sleep: Callable[[float], None] = time.sleep,
) -> WatchdogLoop:
    """Set up everything the loop needs. Raises WatchdogError on any startup failure."""
    memory = MemoryAccountant.detect(cgroup_mount)
    logger.info("CGroups version: %s", memory.variant.name)
    logger.info("Container memory usage (MB): %d", memory.working_set_mb())

    volume = VolumeAccountant(config.tmpfs_volume_path)
    usage = volume.usage_mb()
    logger.info("TmpFS location: %s", config.tmpfs_volume_path)
    logger.info("Total space (MB): %d", usage.total)
    logger.info("Used space (MB): %d", usage.used)

    create_symlinks(config.symlinks)

    return WatchdogLoop(
        config=config,
        memory=memory,
        volume=volume,
        exporter=MetricsExporter(config.metrics_file_path),
        token=token,
        sleep=sleep,
    )


def run(
    config_path: str,
    cgroup_mount: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ExitReason:
    cgroup_mount = cgroup_mount or os.getenv("WATCHDOG_CGROUP_MOUNT", CGROUP_MOUNT)
    logger.info("Using config file: %s", config_path)
    token = TerminationToken()
    try:
        config = WatchdogConfig.load(config_path)
        loop = build_loop(config, token, cgroup_mount, sleep)
        register_signals(token)
    except (WatchdogError, OSError, ValueError) as e:
        # nothing was started yet, skip the shutdown sequence
        logger.error("Failed to start watchdog. Reason - %s", e)
        return ExitReason.INTERNAL_ERROR
    return loop.run()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="container-watchdog",
        description="Watch container memory and tmpfs usage, stop the worker when the volume fills up.",
    )
    parser.add_argument("config", help="path to config.json")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)
    sys.exit(run(args.config).exit_code)


if __name__ == "__main__":
    main()
