import os
from dataclasses import dataclass

from src.watchdog.errors import PathNotFound, VolumeQueryError


@dataclass(frozen=True)
class VolumeUsage:
    # all values in MB; used is derived, never queried
    total: int
    used: int
    free: int


class VolumeAccountant:
    def __init__(self, path: str):
        if not os.path.exists(path):
            raise PathNotFound(f"No filesystem found on {path}")
        self.path = path
        self._statvfs()

    def _statvfs(self) -> os.statvfs_result:
        try:
            return os.statvfs(self.path)
        except OSError as e:
            raise VolumeQueryError(f"Syscall 'statvfs' failed on {self.path}. Errno: {e.errno}") from e

    def usage_mb(self) -> VolumeUsage:
        st = self._statvfs()
        total = (st.f_blocks * st.f_frsize) >> 20
        free = (st.f_bavail * st.f_frsize) >> 20
        return VolumeUsage(total=total, used=total - free, free=free)
