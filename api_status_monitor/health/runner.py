"""
Health runner - Orchestrates one status check pass over all endpoints.

For each configured endpoint, in declaration order: probe, classify, compare
with the previous snapshot, notify on transition. The new snapshot and the
status page document are persisted once every endpoint has been checked.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import requests  # type: ignore

from api_status_monitor.core.entities import (
    Classification,
    EndpointSpec,
    NotificationEvent,
    ProbeResult,
    SnapshotEntry,
    StatusSnapshot,
)
from api_status_monitor.health import checks, config, notify, store

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAIL = 3


@dataclass
class RunReport:
    """Everything produced by one pass."""

    results: List[ProbeResult] = field(default_factory=list)
    current: StatusSnapshot = field(default_factory=dict)
    events: List[NotificationEvent] = field(default_factory=list)
    failed_notifications: int = 0


def run_status_check(
    config_path: Optional[str] = None,
    dry_run: bool = False,
    snapshot_path: Optional[str] = None,
    status_path: Optional[str] = None,
) -> int:
    """
    Run one status check pass and return exit code.

    Args:
        config_path: Path to config file (optional)
        dry_run: If True, print notifications instead of sending them and
                 don't write any file
        snapshot_path: Override for the snapshot file location
        status_path: Override for the status page file location

    Returns:
        Exit code: 0 when the pass completed (even if endpoints are down),
        3 on configuration or persistence failure
    """
    try:
        monitor_config = config.load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Cannot load configuration: %s", e)
        return EXIT_FAIL

    snapshot_file = Path(snapshot_path) if snapshot_path else monitor_config.snapshot_path
    status_file = Path(status_path) if status_path else monitor_config.status_path

    try:
        previous = store.load_snapshot(snapshot_file)

        session = requests.Session()
        session.headers.update(monitor_config.auth_headers)
        try:
            report = check_endpoints(
                monitor_config.endpoints,
                previous,
                session=session,
                timeout=monitor_config.timeout,
                policy=monitor_config.policy,
                webhook_env=monitor_config.webhook_env,
                dry_run=dry_run,
            )
        finally:
            session.close()

        if dry_run:
            logger.info("Dry-run mode: snapshot and status page not written")
        else:
            store.save_snapshot(report.current, snapshot_file)
            store.write_status_page(report.results, status_file)
            logger.info("Snapshot saved to %s", snapshot_file)
            logger.info("Status page data written to %s", status_file)

        _log_summary(report)
        return EXIT_OK

    except store.SnapshotWriteError as e:
        logger.error("Failed to persist run results: %s", e)
        return EXIT_FAIL
    except Exception as e:
        logger.error("Status check failed: %s", e, exc_info=True)
        return EXIT_FAIL


def check_endpoints(
    endpoints: List[EndpointSpec],
    previous: StatusSnapshot,
    session: Optional[requests.Session] = None,
    timeout: float = checks.DEFAULT_TIMEOUT,
    policy: checks.StatusPolicy = checks.DEFAULT_POLICY,
    webhook_env: Optional[str] = config.DEFAULT_WEBHOOK_ENV,
    dry_run: bool = False,
) -> RunReport:
    """
    Probe every endpoint and notify on classification changes.

    Args:
        endpoints: Endpoints in declaration order
        previous: Snapshot loaded from the previous run (not modified)
        session: Shared requests session
        timeout: Per-probe timeout in seconds
        policy: Classification table
        webhook_env: Environment variable holding the webhook URL
        dry_run: Print notifications instead of sending them

    Returns:
        RunReport with one result and one snapshot entry per endpoint
    """
    report = RunReport()

    for spec in endpoints:
        logger.info("Checking %s (%s %s)...", spec.name, spec.method.value, spec.url)
        result = _probe_endpoint(spec, session, timeout, policy)

        if result.is_operational:
            logger.info("%s is operational (HTTP %d)", spec.name, result.http_status)
        else:
            logger.warning("%s is down (HTTP %d)", spec.name, result.http_status)

        report.results.append(result)
        report.current[spec.name] = SnapshotEntry(
            classification=result.classification,
            http_status=result.http_status,
        )

        event = detect_transition(previous.get(spec.name), result)
        if event is None:
            continue

        logger.warning(
            "Status changed for %s: %s -> %s",
            spec.name,
            event.previous_classification.value,
            event.new_classification.value,
        )
        report.events.append(event)
        if not _deliver(event, webhook_env, dry_run):
            report.failed_notifications += 1

    return report


def detect_transition(
    previous_entry: Optional[SnapshotEntry],
    result: ProbeResult,
    now: Optional[datetime] = None,
) -> Optional[NotificationEvent]:
    """
    Compare a fresh result with the previous entry for the same endpoint.

    Args:
        previous_entry: Entry from the previous snapshot, None if the
                        endpoint was never observed
        result: Result of this run's probe
        now: Event timestamp (default: now, UTC)

    Returns:
        NotificationEvent if the classification changed, else None. The
        first observation of an endpoint only establishes a baseline.
    """
    if previous_entry is None:
        logger.info("First check for %s (no notification)", result.endpoint_name)
        return None

    if previous_entry.classification is result.classification:
        logger.debug("Status unchanged for %s", result.endpoint_name)
        return None

    return NotificationEvent(
        endpoint_name=result.endpoint_name,
        previous_classification=previous_entry.classification,
        new_classification=result.classification,
        http_status=result.http_status,
        timestamp=now or datetime.now(timezone.utc),
    )


def _probe_endpoint(
    spec: EndpointSpec,
    session: Optional[requests.Session],
    timeout: float,
    policy: checks.StatusPolicy,
) -> ProbeResult:
    """Probe one endpoint; unexpected errors count as no response."""
    try:
        return checks.probe(spec, session=session, timeout=timeout, policy=policy)
    except Exception as e:
        logger.error("Probe failed for %s: %s", spec.name, e, exc_info=True)
        return ProbeResult(
            endpoint_name=spec.name,
            http_status=checks.NO_RESPONSE,
            classification=Classification.DOWN,
        )


def _deliver(
    event: NotificationEvent, webhook_env: Optional[str], dry_run: bool
) -> bool:
    """Send a notification without letting a failure abort the run."""
    try:
        return notify.notify(event, webhook_env=webhook_env, dry_run=dry_run)
    except Exception as e:
        logger.error(
            "Notification failed for %s: %s", event.endpoint_name, e, exc_info=True
        )
        return False


def _log_summary(report: RunReport) -> None:
    """
    Log a per-endpoint summary of the pass.

    Args:
        report: Completed run report
    """
    operational = sum(1 for result in report.results if result.is_operational)
    logger.info(
        "Status check complete: %d/%d operational, %d transitions, "
        "%d notification failures",
        operational,
        len(report.results),
        len(report.events),
        report.failed_notifications,
    )
    for result in report.results:
        marker = "🟢" if result.is_operational else "🔴"
        logger.info(
            "  %s %s: %s", marker, result.endpoint_name, result.classification.value
        )
