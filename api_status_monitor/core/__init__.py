"""
Core module - Entities shared across the status monitor.
"""

from api_status_monitor.core.entities import (
    Classification,
    EndpointSpec,
    HttpMethod,
    NotificationEvent,
    ProbeResult,
    SnapshotEntry,
    StatusSnapshot,
)

__all__ = [
    "Classification",
    "EndpointSpec",
    "HttpMethod",
    "NotificationEvent",
    "ProbeResult",
    "SnapshotEntry",
    "StatusSnapshot",
]
