import logging
import os
import signal
from typing import Callable, Iterable, Iterator, Optional, Set, Tuple

from src.watchdog.errors import ProcessEnumerationError, SignalDeliveryError

logger = logging.getLogger(__name__)

PROC_ROOT = "/proc"

ProcessEntry = Tuple[int, str]


def canonical_path(path: str) -> Optional[str]:
    try:
        return os.path.realpath(path, strict=True)
    except OSError as e:
        logger.warning("Failed to get absolute path for %s: %s", path, e)
        return None


def _read_exe(proc_root: str, pid: int) -> str:
    try:
        return os.readlink(os.path.join(proc_root, str(pid), "exe"))
    except OSError as e:
        raise ProcessEnumerationError(f"Failed to get process exe <pid={pid}>: {e}") from e


def iter_process_table(proc_root: str = PROC_ROOT) -> Iterator[ProcessEntry]:
    """Yield ``(pid, exe_path)`` for every live process whose executable resolves.

    Kernel threads, processes that exit mid-scan and processes we are not
    allowed to inspect are skipped.
    """
    try:
        entries = os.listdir(proc_root)
    except OSError as e:
        logger.error("Failed to list processes. Reason - %s", e)
        return

    for pid_str in entries:
        if not pid_str.isdigit():
            continue
        pid = int(pid_str)
        try:
            yield pid, _read_exe(proc_root, pid)
        except ProcessEnumerationError as e:
            logger.debug("%s", e)


def match_pids(target: str, process_table: Iterable[ProcessEntry]) -> Set[int]:
    return {pid for pid, exe in process_table if exe == target}


def _send(pid: int, sig: signal.Signals, kill: Callable[[int, int], None]) -> None:
    try:
        kill(pid, sig)
    except OSError as e:
        raise SignalDeliveryError(f"Failed to send {sig.name} to process <pid={pid}>: {e}") from e


def terminate_all(
    executable_path: str,
    sig: signal.Signals = signal.SIGTERM,
    proc_root: str = PROC_ROOT,
    kill: Callable[[int, int], None] = os.kill,
) -> Set[int]:
    """Send ``sig`` to every process running ``executable_path``.

    Best effort: never raises. Returns the pids that were signalled.
    """
    target = canonical_path(executable_path)
    if target is None:
        return set()

    signalled: Set[int] = set()
    for pid in sorted(match_pids(target, iter_process_table(proc_root))):
        logger.info("Send %s to process <pid=%d>", sig.name, pid)
        try:
            _send(pid, sig, kill)
        except SignalDeliveryError as e:
            logger.warning("%s", e)
            continue
        signalled.add(pid)
    return signalled
