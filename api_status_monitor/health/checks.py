"""
Health checks - HTTP probing and status-code classification.

This module issues the probe request for an endpoint and maps the resulting
HTTP status code to a Classification. Probing never raises: transport
failures are reported as status 0.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import requests  # type: ignore

from api_status_monitor.core.entities import (
    Classification,
    EndpointSpec,
    HttpMethod,
    ProbeResult,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

# Status code used when no HTTP response was received
NO_RESPONSE = 0

StatusRange = Tuple[int, int]

# Inclusive ranges counted as operational.
# 404 is operational for mutating methods only: the service answered but the
# route may need a resource id. For reads a 404 means the route is gone.
DEFAULT_READ_OPERATIONAL: Tuple[StatusRange, ...] = (
    (200, 299),
    (300, 303),
    (400, 400),
    (401, 401),
    (403, 403),
    (405, 405),
)
DEFAULT_WRITE_OPERATIONAL: Tuple[StatusRange, ...] = DEFAULT_READ_OPERATIONAL + (
    (404, 404),
)


@dataclass(frozen=True)
class StatusPolicy:
    """
    Classification table: which status codes count as operational.

    Attributes:
        read: Operational ranges for GET/HEAD
        write: Operational ranges for POST/PUT/PATCH/DELETE
    """

    read: Tuple[StatusRange, ...] = DEFAULT_READ_OPERATIONAL
    write: Tuple[StatusRange, ...] = DEFAULT_WRITE_OPERATIONAL

    def ranges_for(self, method: HttpMethod) -> Tuple[StatusRange, ...]:
        return self.read if HttpMethod(method).is_read else self.write


DEFAULT_POLICY = StatusPolicy()


def classify(
    http_status: int, method: HttpMethod, policy: StatusPolicy = DEFAULT_POLICY
) -> Classification:
    """
    Classify an HTTP status code for the given request method.

    Args:
        http_status: HTTP status code, 0 for timeout/connection failure
        method: Method the endpoint is probed with
        policy: Classification table (default: DEFAULT_POLICY)

    Returns:
        Classification.OPERATIONAL if the code falls in one of the
        operational ranges for the method family, else Classification.DOWN
    """
    if http_status == NO_RESPONSE:
        return Classification.DOWN

    for low, high in policy.ranges_for(method):
        if low <= http_status <= high:
            return Classification.OPERATIONAL
    return Classification.DOWN


def probe(
    spec: EndpointSpec,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> ProbeResult:
    """
    Probe an endpoint and classify the response.

    GET endpoints are tried with HEAD first and fall back to a streamed GET
    when HEAD fails or answers with a status >= 400. POST/PUT/PATCH send the
    configured payload (or "{}") as JSON. DELETE sends no body.

    Args:
        spec: Endpoint to probe
        session: requests session carrying shared headers (auth). A
                 throwaway session is used if None.
        timeout: Request timeout in seconds
        policy: Classification table

    Returns:
        ProbeResult; http_status is 0 when the request failed at the
        transport level (DNS, connect, TLS, timeout)
    """
    own_session = session is None
    if own_session:
        session = requests.Session()

    try:
        http_status = _request_status(session, spec, timeout)
    finally:
        if own_session:
            session.close()

    classification = classify(http_status, spec.method, policy)
    return ProbeResult(
        endpoint_name=spec.name,
        http_status=http_status,
        classification=classification,
    )


def _request_status(
    session: requests.Session, spec: EndpointSpec, timeout: float
) -> int:
    """
    Issue the request(s) for an endpoint and return the status code.

    Returns:
        HTTP status code, or NO_RESPONSE on transport failure
    """
    method = HttpMethod(spec.method)

    if method is HttpMethod.GET:
        try:
            response = session.head(
                spec.url, timeout=timeout, allow_redirects=False
            )
            if response.status_code < 400:
                return response.status_code
            logger.debug(
                "HEAD %s returned %d, retrying with GET",
                spec.url,
                response.status_code,
            )
        except requests.exceptions.RequestException as e:
            logger.debug("HEAD %s failed: %s. Retrying with GET", spec.url, e)

        try:
            # stream=True so the body is never downloaded
            response = session.get(
                spec.url, timeout=timeout, allow_redirects=False, stream=True
            )
            response.close()
            return response.status_code
        except requests.exceptions.RequestException as e:
            logger.warning("GET %s failed: %s", spec.url, e)
            return NO_RESPONSE

    kwargs = {"timeout": timeout, "allow_redirects": False}
    if method in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH):
        kwargs["data"] = spec.payload if spec.payload is not None else "{}"
        kwargs["headers"] = {"Content-Type": "application/json"}

    try:
        response = session.request(method.value, spec.url, **kwargs)
        response.close()
        return response.status_code
    except requests.exceptions.RequestException as e:
        logger.warning("%s %s failed: %s", method.value, spec.url, e)
        return NO_RESPONSE
