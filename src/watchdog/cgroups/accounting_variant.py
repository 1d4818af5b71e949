from enum import Enum


class AccountingVariant(Enum):
    # (usage counter, stats breakdown), relative to the cgroup mount
    V1 = ("memory/memory.usage_in_bytes", "memory/memory.stat")
    V2 = ("memory.current", "memory.stat")

    @property
    def usage_file(self) -> str:
        return self.value[0]

    @property
    def stat_file(self) -> str:
        return self.value[1]
