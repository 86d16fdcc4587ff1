"""
Health configuration - Loads and validates the status check configuration.

This module loads the list of endpoints to monitor, plus process-wide
settings (timeout, file locations, notification and auth environment
variables, classification table) from a YAML or JSON file.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml  # type: ignore

from api_status_monitor.core.entities import (
    ENDPOINT_METHODS,
    EndpointSpec,
    HttpMethod,
)
from api_status_monitor.health.checks import (
    DEFAULT_POLICY,
    DEFAULT_TIMEOUT,
    StatusPolicy,
    StatusRange,
)
from api_status_monitor.health.store import CODE_SUFFIX

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_FILE = ".status/previous-status.json"
DEFAULT_STATUS_FILE = "status.json"
DEFAULT_WEBHOOK_ENV = "SLACK_WEBHOOK_URL"


# Configuration schema structure
# {
#   "timeout": int,
#   "snapshot_file": str,
#   "status_file": str,
#   "notify": {"webhook_env": str},
#   "auth": {
#     "api_key_env": Optional[str],
#     "bearer_token_env": Optional[str],
#     "authorization_env": Optional[str]
#   },
#   "classification": {"read": List[int | str], "write": List[int | str]},
#   "endpoints": [
#     {"name": str, "url": str, "method": str, "payload": Optional[str | dict]}
#   ]
# }


@dataclass
class MonitorConfig:
    """Validated monitor configuration."""

    endpoints: List[EndpointSpec]
    timeout: float = DEFAULT_TIMEOUT
    snapshot_path: Path = Path(DEFAULT_SNAPSHOT_FILE)
    status_path: Path = Path(DEFAULT_STATUS_FILE)
    webhook_env: str = DEFAULT_WEBHOOK_ENV
    auth_headers: Dict[str, str] = field(default_factory=dict)
    policy: StatusPolicy = DEFAULT_POLICY


def load_config(config_path: Optional[str] = None) -> MonitorConfig:
    """
    Load status check configuration from YAML/JSON file.

    Args:
        config_path: Path to config file. If None, looks for
                     configs/status.yaml or configs/status.json, falling back
                     to configs/status.example.yaml / .json

    Returns:
        MonitorConfig with the validated endpoints and settings

    Raises:
        FileNotFoundError: If no config file found
        ValueError: If config is invalid or defines no usable endpoint
    """
    if config_path is None:
        config_path = str(_find_default_config())

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    data = _read_config_file(config_file)

    if isinstance(data, list):
        data = {"endpoints": data}
    if not isinstance(data, dict):
        raise ValueError("Config must be a mapping or a list of endpoints")

    endpoints = _validate_endpoints(data.get("endpoints"))
    if not endpoints:
        raise ValueError(f"No valid endpoints configured in {config_path}")

    timeout = data.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValueError("Field 'timeout' must be a number")
    if timeout <= 0:
        raise ValueError("Field 'timeout' must be positive")

    notify_config = data.get("notify") or {}
    if not isinstance(notify_config, dict):
        raise ValueError("Field 'notify' must be a dict")

    auth_config = data.get("auth") or {}
    if not isinstance(auth_config, dict):
        raise ValueError("Field 'auth' must be a dict")

    snapshot_file = data.get("snapshot_file", DEFAULT_SNAPSHOT_FILE)
    status_file = data.get("status_file", DEFAULT_STATUS_FILE)
    webhook_env = notify_config.get("webhook_env", DEFAULT_WEBHOOK_ENV)
    for field_name, value in (
        ("snapshot_file", snapshot_file),
        ("status_file", status_file),
        ("notify.webhook_env", webhook_env),
    ):
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Field '{field_name}' must be a non-empty string")

    config = MonitorConfig(
        endpoints=endpoints,
        timeout=timeout,
        snapshot_path=Path(snapshot_file),
        status_path=Path(status_file),
        webhook_env=webhook_env,
        auth_headers=build_auth_headers(auth_config),
        policy=_parse_policy(data.get("classification")),
    )

    logger.info(
        "Loaded status config: %d endpoints configured from %s",
        len(endpoints),
        config_path,
    )

    return config


def build_auth_headers(auth_config: Dict[str, Any]) -> Dict[str, str]:
    """
    Resolve static auth headers from environment variables.

    Args:
        auth_config: Dict with optional api_key_env, bearer_token_env and
                     authorization_env entries naming environment variables

    Returns:
        Headers to attach to every probe. A raw Authorization value takes
        precedence over a bearer token.
    """
    headers: Dict[str, str] = {}

    api_key = _env_value(auth_config.get("api_key_env"))
    if api_key:
        headers["X-API-Key"] = api_key

    bearer_token = _env_value(auth_config.get("bearer_token_env"))
    if bearer_token:
        headers["Authorization"] = f"Bearer {bearer_token}"

    authorization = _env_value(auth_config.get("authorization_env"))
    if authorization:
        headers["Authorization"] = authorization

    if headers:
        logger.debug("Attaching auth headers to probes: %s", sorted(headers))

    return headers


def parse_status_ranges(values: Any) -> Tuple[StatusRange, ...]:
    """
    Parse a list of status codes and "low-high" ranges.

    Args:
        values: List like [200, "300-303", "404"]

    Returns:
        Tuple of inclusive (low, high) ranges

    Raises:
        ValueError: If an entry is not a code or a valid range
    """
    if not isinstance(values, list):
        raise ValueError("Status ranges must be a list")

    ranges: List[StatusRange] = []
    for value in values:
        if isinstance(value, bool):
            raise ValueError(f"Invalid status code: {value!r}")
        if isinstance(value, int):
            low = high = value
        elif isinstance(value, str):
            parts = value.split("-")
            try:
                if len(parts) == 1:
                    low = high = int(parts[0])
                elif len(parts) == 2:
                    low, high = int(parts[0]), int(parts[1])
                else:
                    raise ValueError(value)
            except ValueError:
                raise ValueError(f"Invalid status range: {value!r}")
        else:
            raise ValueError(f"Invalid status code: {value!r}")

        if low > high or low < 100 or high > 599:
            raise ValueError(f"Invalid status range: {value!r}")
        ranges.append((low, high))

    return tuple(ranges)


def _find_default_config() -> Path:
    """Locate the config file when no explicit path is given."""
    project_root = Path(__file__).parent.parent.parent
    configs_dir = project_root / "configs"

    for name in ("status.yaml", "status.yml", "status.json"):
        candidate = configs_dir / name
        if candidate.exists():
            return candidate

    for name in ("status.example.yaml", "status.example.json"):
        candidate = configs_dir / name
        if candidate.exists():
            logger.warning(
                "Using example config file: %s. "
                "Create configs/status.yaml or configs/status.json for production.",
                candidate,
            )
            return candidate

    raise FileNotFoundError(
        f"Config file not found. Expected configs/status.yaml, "
        f"configs/status.json or an example config in {configs_dir}"
    )


def _read_config_file(config_file: Path) -> Any:
    """Parse a YAML or JSON config file."""
    with open(config_file, "r", encoding="utf-8") as f:
        if config_file.suffix in (".yaml", ".yml"):
            try:
                return yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in config file: {e}")
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file: {e}")


def _validate_endpoints(raw_endpoints: Any) -> List[EndpointSpec]:
    """
    Validate the endpoints list, skipping invalid entries.

    Args:
        raw_endpoints: Raw "endpoints" value from the config file

    Returns:
        Endpoints in declaration order
    """
    if raw_endpoints is None:
        return []
    if not isinstance(raw_endpoints, list):
        raise ValueError("Field 'endpoints' must be a list")

    endpoints: List[EndpointSpec] = []
    seen_names = set()
    for index, raw in enumerate(raw_endpoints):
        try:
            spec = _validate_endpoint_config(raw)
        except ValueError as e:
            logger.error("Invalid config for endpoint #%d: %s", index, e)
            continue

        if spec.name in seen_names:
            logger.error("Duplicate endpoint name skipped: %s", spec.name)
            continue

        # "<name>_code" holds the status code of <name> in the snapshot file
        if f"{spec.name}{CODE_SUFFIX}" in seen_names or (
            spec.name.endswith(CODE_SUFFIX)
            and spec.name[: -len(CODE_SUFFIX)] in seen_names
        ):
            logger.error(
                "Endpoint name clashes with a snapshot code field, skipped: %s",
                spec.name,
            )
            continue

        seen_names.add(spec.name)
        endpoints.append(spec)

    return endpoints


def _validate_endpoint_config(config: Any) -> EndpointSpec:
    """
    Validate a single endpoint's configuration.

    Args:
        config: Raw configuration dict

    Returns:
        EndpointSpec

    Raises:
        ValueError: If config is invalid
    """
    if not isinstance(config, dict):
        raise ValueError("Endpoint config must be a dict")

    name = config.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Missing required field 'name'")

    url = config.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ValueError(f"Missing required field 'url' for endpoint: {name}")

    raw_method = config.get("method", "GET")
    if not isinstance(raw_method, str):
        raise ValueError(f"Field 'method' must be a string for endpoint: {name}")
    try:
        method = HttpMethod(raw_method.upper())
    except ValueError:
        method = None
    if method not in ENDPOINT_METHODS:
        valid = tuple(m.value for m in ENDPOINT_METHODS)
        raise ValueError(
            f"Field 'method' must be one of {valid} for endpoint: {name}"
        )

    payload = config.get("payload")
    if isinstance(payload, (dict, list)):
        payload = json.dumps(payload)
    elif payload is not None and not isinstance(payload, str):
        raise ValueError(
            f"Field 'payload' must be a string or mapping for endpoint: {name}"
        )

    return EndpointSpec(name=name, url=url, method=method, payload=payload)


def _parse_policy(raw: Any) -> StatusPolicy:
    """Build the classification table, overriding defaults per family."""
    if raw is None:
        return DEFAULT_POLICY
    if not isinstance(raw, dict):
        raise ValueError("Field 'classification' must be a dict")

    read = DEFAULT_POLICY.read
    write = DEFAULT_POLICY.write
    if "read" in raw:
        read = parse_status_ranges(raw["read"])
    if "write" in raw:
        write = parse_status_ranges(raw["write"])

    return StatusPolicy(read=read, write=write)


def _env_value(env_name: Optional[str]) -> Optional[str]:
    if not env_name:
        return None
    return os.environ.get(env_name) or None
