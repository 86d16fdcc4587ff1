"""
Core entities - Data model shared by the health monitor modules.

These are plain value objects: endpoint definitions loaded from config,
probe results produced each run, persisted snapshot entries and the
events sent to the notification sink.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class HttpMethod(str, Enum):
    """HTTP methods understood by the probe and the classifier."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def is_read(self) -> bool:
        """True for methods classified with the read table (GET/HEAD)."""
        return self in (HttpMethod.GET, HttpMethod.HEAD)


# Methods an endpoint may be configured with (HEAD is only used internally)
ENDPOINT_METHODS = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.PATCH,
    HttpMethod.DELETE,
)


class Classification(str, Enum):
    """Health classification of an endpoint."""

    OPERATIONAL = "operational"
    DOWN = "down"


@dataclass(frozen=True)
class EndpointSpec:
    """
    A configured endpoint to probe.

    Attributes:
        name: Unique display name, also the snapshot key
        url: URL to probe
        method: HTTP method (default GET)
        payload: Optional JSON body for POST/PUT/PATCH
    """

    name: str
    url: str
    method: HttpMethod = HttpMethod.GET
    payload: Optional[str] = None


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one endpoint. http_status 0 means no response."""

    endpoint_name: str
    http_status: int
    classification: Classification

    @property
    def is_operational(self) -> bool:
        """True if the endpoint was classified as operational."""
        return self.classification is Classification.OPERATIONAL


@dataclass(frozen=True)
class SnapshotEntry:
    """Persisted state of one endpoint."""

    classification: Classification
    http_status: Optional[int] = None


# endpoint name -> entry, in endpoint declaration order
StatusSnapshot = Dict[str, SnapshotEntry]


@dataclass(frozen=True)
class NotificationEvent:
    """A classification change between two consecutive runs."""

    endpoint_name: str
    previous_classification: Classification
    new_classification: Classification
    http_status: int
    timestamp: datetime
