"""
Health notifications - Slack-compatible webhook and stdout fallback.

This module sends a message when an endpoint changes classification between
two runs. Delivery failures are logged and reported through the return
value; they never raise.
"""

import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests  # type: ignore

from api_status_monitor.core.entities import Classification, NotificationEvent
from api_status_monitor.health.store import format_timestamp

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10


def notify(
    event: NotificationEvent,
    webhook_env: Optional[str] = None,
    dry_run: bool = False,
) -> bool:
    """
    Send a transition notification via webhook, or stdout if none is set.

    Args:
        event: Transition to report
        webhook_env: Environment variable name containing the webhook URL
        dry_run: If True, only print the notification

    Returns:
        True if the notification was delivered (or printed), False if the
        webhook call failed
    """
    if dry_run:
        _print_stdout(event)
        return True

    webhook_url = os.environ.get(webhook_env) if webhook_env else None
    if not webhook_url:
        logger.warning(
            "%s not set, skipping webhook notification for %s",
            webhook_env or "Webhook URL",
            event.endpoint_name,
        )
        _print_stdout(event)
        return True

    return send_notification(event, webhook_url)


def send_notification(
    event: NotificationEvent, webhook_url: str, timeout: float = WEBHOOK_TIMEOUT
) -> bool:
    """
    POST a transition event to a webhook.

    Args:
        event: Transition to report
        webhook_url: Webhook URL (Slack Incoming Webhook or generic sink)
        timeout: Request timeout in seconds

    Returns:
        True if sent successfully, False otherwise
    """
    payload = build_payload(event)

    try:
        response = requests.post(
            webhook_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(
            "Failed to send notification for %s: %s", event.endpoint_name, e
        )
        return False

    logger.info("Notification sent for %s", event.endpoint_name)
    return True


def build_payload(event: NotificationEvent) -> Dict[str, Any]:
    """
    Build the webhook body: generic event fields plus Slack Block Kit blocks.

    Args:
        event: Transition to report

    Returns:
        JSON-serializable payload
    """
    emoji, title = _headline(event)
    readable_time = _readable_time(event)

    message = (
        f"*{event.endpoint_name}* is now "
        f"*{event.new_classification.value.upper()}*\n\n"
        f"Status: {event.new_classification.value}\n"
        f"HTTP: {_describe_status(event.http_status)}\n"
        f"Time: {readable_time}"
    )

    return {
        "service_name": event.endpoint_name,
        "previous_status": event.previous_classification.value,
        "new_status": event.new_classification.value,
        "http_status": event.http_status,
        "timestamp": format_timestamp(event.timestamp),
        "text": f"{emoji} {title}",
        "blocks": [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f"{emoji} {title}"},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": message},
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"Updated: {readable_time}"}
                ],
            },
        ],
    }


def _headline(event: NotificationEvent) -> Tuple[str, str]:
    previous = event.previous_classification
    new = event.new_classification

    if previous is Classification.OPERATIONAL and new is Classification.DOWN:
        return "🔴", "Service Alert - DOWN"
    if previous is Classification.DOWN and new is Classification.OPERATIONAL:
        return "🟢", "Service Recovered"
    return "⚠️", "Status Change"


def _readable_time(event: NotificationEvent) -> str:
    # Same instant as the ISO timestamp, for humans
    iso = format_timestamp(event.timestamp)
    return f"{iso[:10]} {iso[11:19]} UTC"


def _describe_status(http_status: int) -> str:
    if http_status == 0:
        return "no response (timeout/connection error)"
    return str(http_status)


def _print_stdout(event: NotificationEvent) -> None:
    """
    Print formatted notification to stdout.

    Args:
        event: Transition to report
    """
    emoji, title = _headline(event)

    print()
    print("=" * 80)
    print(f"{emoji} {title}")
    print("=" * 80)
    print(f"Service: {event.endpoint_name}")
    print(
        f"Status: {event.previous_classification.value} -> "
        f"{event.new_classification.value}"
    )
    print(f"HTTP: {_describe_status(event.http_status)}")
    print(f"Time: {_readable_time(event)}")
    print("=" * 80)
    print()
