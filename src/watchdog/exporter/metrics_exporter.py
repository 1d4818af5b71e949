from shared.contracts.watchdog_contracts import MetricsSnapshot
from src.watchdog.errors import MetricsPublishError


class MetricsExporter:
    """Overwrites a single JSON file with the latest snapshot; no history is kept."""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def publish(self, snapshot: MetricsSnapshot) -> None:
        try:
            with open(self.file_path, "w", encoding="utf-8") as f:
                f.write(snapshot.model_dump_json())
        except OSError as e:
            raise MetricsPublishError(f"Failed to dump metrics to {self.file_path}. Reason - {e}") from e
