"""
Health store - Flat-file persistence for status snapshots.

This module keeps the previous run's classifications for comparison and
publishes the status document read by the static status page. Both files
are replaced atomically, so a failed write never leaves a truncated file.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from api_status_monitor.core.entities import (
    Classification,
    ProbeResult,
    SnapshotEntry,
    StatusSnapshot,
)

logger = logging.getLogger(__name__)

CODE_SUFFIX = "_code"


# Snapshot file structure
# {
#   "<endpoint name>": "operational" | "down",
#   "<endpoint name>_code": int,  # last http status
# }
#
# Status file structure
# {
#   "updatedAt": "2025-01-01T00:00:00.000Z",
#   "services": [{"name": str, "status": str, "statusCode": int}]
# }


class SnapshotWriteError(OSError):
    """Raised when a snapshot or status file cannot be written."""


def load_snapshot(snapshot_path: Path) -> StatusSnapshot:
    """
    Load the previous run's snapshot.

    Args:
        snapshot_path: Path to the snapshot JSON file

    Returns:
        Dict with endpoint name -> SnapshotEntry. Empty if the file does not
        exist or cannot be parsed.
    """
    snapshot_path = Path(snapshot_path)

    if not snapshot_path.exists():
        logger.info("Snapshot file not found: %s. Starting fresh.", snapshot_path)
        return {}

    try:
        with open(snapshot_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(
            "Failed to load snapshot %s: %s. Treating as no history.",
            snapshot_path,
            e,
        )
        return {}

    if not isinstance(data, dict):
        logger.error(
            "Snapshot %s is not a JSON object. Treating as no history.",
            snapshot_path,
        )
        return {}

    snapshot = snapshot_from_dict(data)
    logger.debug(
        "Loaded snapshot for %d endpoints from %s", len(snapshot), snapshot_path
    )
    return snapshot


def save_snapshot(snapshot: StatusSnapshot, snapshot_path: Path) -> None:
    """
    Save the snapshot, replacing the previous one atomically.

    Args:
        snapshot: Snapshot to persist
        snapshot_path: Path to the snapshot JSON file

    Raises:
        SnapshotWriteError: If the file cannot be written. The previous
                            snapshot is left untouched.
    """
    _write_json_atomic(snapshot_to_dict(snapshot), Path(snapshot_path))
    logger.debug(
        "Saved snapshot for %d endpoints to %s", len(snapshot), snapshot_path
    )


def write_status_page(
    results: Iterable[ProbeResult],
    status_path: Path,
    updated_at: Optional[datetime] = None,
) -> None:
    """
    Publish the status document consumed by the static status page.

    Args:
        results: Probe results in display order
        status_path: Path to the status JSON file
        updated_at: Timestamp of the run (default: now, UTC)

    Raises:
        SnapshotWriteError: If the file cannot be written
    """
    if updated_at is None:
        updated_at = datetime.now(timezone.utc)

    document = {
        "updatedAt": format_timestamp(updated_at),
        "services": [
            {
                "name": result.endpoint_name,
                "status": result.classification.value,
                "statusCode": result.http_status,
            }
            for result in results
        ],
    }

    _write_json_atomic(document, Path(status_path))
    logger.debug("Wrote status page data to %s", status_path)


def snapshot_to_dict(snapshot: StatusSnapshot) -> dict:
    """Flatten a snapshot into its on-disk JSON object."""
    data: dict = {}
    for name, entry in snapshot.items():
        data[name] = entry.classification.value
        if entry.http_status is not None:
            data[f"{name}{CODE_SUFFIX}"] = entry.http_status
    return data


def snapshot_from_dict(data: dict) -> StatusSnapshot:
    """
    Rebuild a snapshot from its on-disk JSON object.

    Classification fields hold strings and code fields hold integers, so an
    endpoint whose own name ends in "_code" is still read correctly.
    """
    snapshot: StatusSnapshot = {}

    for name, value in data.items():
        if not isinstance(value, str):
            continue
        try:
            classification = Classification(value)
        except ValueError:
            logger.warning(
                "Ignoring unknown status %r for %s in snapshot", value, name
            )
            continue

        code = data.get(f"{name}{CODE_SUFFIX}")
        if isinstance(code, bool) or not isinstance(code, int):
            code = None
        snapshot[name] = SnapshotEntry(classification=classification, http_status=code)

    return snapshot


def format_timestamp(moment: datetime) -> str:
    """Format as ISO-8601 UTC with milliseconds, e.g. 2025-01-01T00:00:00.000Z."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat(timespec="milliseconds") + "Z"


def _write_json_atomic(data: Any, path: Path) -> None:
    """
    Write JSON to a temp file in the target directory, then rename it over
    the target.

    Raises:
        SnapshotWriteError: On any filesystem or serialization error
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise SnapshotWriteError(f"Failed to write {path}: {e}") from e
