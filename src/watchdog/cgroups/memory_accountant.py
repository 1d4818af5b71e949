import logging
import os
from typing import Dict

from src.watchdog.cgroups.accounting_variant import AccountingVariant
from src.watchdog.errors import (
    AccountingParseError, AccountingReadError, MissingStat, NoVariantFound
)

logger = logging.getLogger(__name__)

CGROUP_MOUNT = "/sys/fs/cgroup"

# probe order matters: v1 wins when both hierarchies are visible
_PROBE_ORDER = (AccountingVariant.V1, AccountingVariant.V2)


def _read(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise AccountingReadError(f"Failed to read file {path}. Reason - {e}") from e


def _parse_int(value: str) -> int:
    # counters are unsigned decimal; reject signs, underscores and non-ASCII digits
    if not (value.isascii() and value.isdigit()):
        raise AccountingParseError(f"Failed to parse {value!r} as an unsigned integer")
    return int(value)


def parse_stats(content: str) -> Dict[str, int]:
    """Parse a memory.stat body into a mapping of counter name to value.

    Each line is ``<key> <value>``, split on the first space.
    """
    stats: Dict[str, int] = {}
    for line in content.strip().splitlines():
        name, sep, value = line.partition(" ")
        if not sep:
            raise AccountingParseError(f"Failed to parse {line!r} as <key, val>")
        stats[name] = _parse_int(value)
    return stats


def inactive_file_bytes(stats: Dict[str, int]) -> int:
    # v1 hierarchical accounting reports total_*, v2 only inactive_file
    if "total_inactive_file" in stats:
        return stats["total_inactive_file"]
    if "inactive_file" in stats:
        return stats["inactive_file"]
    raise MissingStat("Neither total_inactive_file nor inactive_file found in memory stats")


def working_set_bytes(usage: int, inactive: int) -> int:
    return usage - inactive if usage > inactive else 0


class MemoryAccountant:
    """Container memory working set, read from whichever cgroup interface is mounted."""

    def __init__(self, variant: AccountingVariant, mount: str = CGROUP_MOUNT):
        self._variant = variant
        self.mount = mount
        self.usage_path = os.path.join(mount, variant.usage_file)
        self.stat_path = os.path.join(mount, variant.stat_file)

    @classmethod
    def detect(cls, mount: str = CGROUP_MOUNT) -> "MemoryAccountant":
        for variant in _PROBE_ORDER:
            usage_path = os.path.join(mount, variant.usage_file)
            stat_path = os.path.join(mount, variant.stat_file)
            if os.path.exists(usage_path) and os.path.exists(stat_path):
                logger.debug("cgroup memory accounting %s found under %s", variant.name, mount)
                return cls(variant, mount)
        raise NoVariantFound(f"Failed to get cgroups version under {mount}")

    @property
    def variant(self) -> AccountingVariant:
        return self._variant

    def usage_bytes(self) -> int:
        return _parse_int(_read(self.usage_path).strip())

    def stats(self) -> Dict[str, int]:
        return parse_stats(_read(self.stat_path))

    def working_set_mb(self) -> int:
        stats = self.stats()
        usage = self.usage_bytes()
        return working_set_bytes(usage, inactive_file_bytes(stats)) >> 20
