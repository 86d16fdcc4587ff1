"""
Health module - Scheduled status checks for HTTP endpoints.

This module probes configured endpoints, classifies them as operational or
down, persists the result for the next run and sends a notification when an
endpoint changes state.
"""

from api_status_monitor.health.config import load_config
from api_status_monitor.health.runner import run_status_check

__all__ = ["load_config", "run_status_check"]
