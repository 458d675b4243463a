"""Activity log of task mutations."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ACTIVITY_LOG_FILENAME = "activity.log"


def _activity_log_path(library_root: Path) -> Path:
    return library_root / ACTIVITY_LOG_FILENAME


def _build_activity_entry(
    operation: str,
    relative_path: str,
    summary: str,
    commit_sha: str,
) -> dict[str, str]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": operation,
        "path": relative_path,
        "summary": summary,
        "commitSha": commit_sha,
    }


def _append_activity_log(library_root: Path, entry: dict[str, Any]) -> None:
    payload = json.dumps(entry, sort_keys=True, separators=(",", ":"))
    with _activity_log_path(library_root).open("a", encoding="utf-8") as log_file:
        log_file.write(payload + "\n")
        log_file.flush()
        os.fsync(log_file.fileno())
