"""Completion markers backing the first-run predicates."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from wpbootstrap.errors import BootstrapError


class MarkerService:
    """Persists a "stage already completed" marker next to the data it guards.

    Presence of the marker is the only signal; its JSON body is informational
    and must never carry credentials.
    """

    SCHEMA_VERSION = 1

    def __init__(self, marker_file: str, logger):
        self.marker_file = marker_file
        self.logger = logger

    def is_completed(self) -> bool:
        return os.path.exists(self.marker_file)

    def mark_completed(self, stage: str, details: Optional[Dict[str, Any]] = None):
        marker_dir = os.path.dirname(self.marker_file) or "."
        os.makedirs(marker_dir, exist_ok=True)
        payload = {
            "schema_version": self.SCHEMA_VERSION,
            "stage": stage,
            "completed_at": self._now(),
            "details": details or {},
        }

        fd, temp_path = tempfile.mkstemp(prefix=".marker-", suffix=".json", dir=marker_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(payload, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.marker_file)
        except OSError as exc:
            raise BootstrapError(
                f"Could not write marker file '{self.marker_file}': {exc}"
            ) from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self.logger.debug("Marked stage '%s' completed at %s", stage, self.marker_file)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
