"""Turn agent status and endpoint payloads into ledger entries."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable

from cilium_status.errors import StatusError
from cilium_status.status.aggregate import AggregateStatus
from cilium_status.status.models import (
    AgentStatusResponse,
    ControllerStatus,
    Endpoint,
    EndpointState,
    SubsystemStatus,
)

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


def classify_subsystem_state(subsystem: str, state: str, msg: str) -> tuple[Severity, str] | None:
    """
    Classify one subsystem state.

    "warning" and "failure" (case-insensitive) yield a ledger entry reading
    "<subsystem>: <msg>". "ok" and any unrecognized state yield None.
    """
    text = f"{subsystem}: {msg}"
    normalized = (state or "").lower()
    if normalized == "warning":
        return Severity.WARNING, text
    if normalized == "failure":
        return Severity.ERROR, text
    return None


def parse_subsystem_state(
    status: AggregateStatus,
    deployment: str,
    pod: str,
    subsystem: str,
    substatus: SubsystemStatus | None,
) -> None:
    """Record the classification of a subsystem, if it was reported at all."""
    if substatus is None:
        return
    result = classify_subsystem_state(subsystem, substatus.state, substatus.msg)
    if result is None:
        return
    severity, text = result
    if severity is Severity.ERROR:
        status.add_error(deployment, pod, StatusError(text))
    else:
        status.add_warning(deployment, pod, StatusError(text))


def format_duration(elapsed: timedelta) -> str:
    """Render whole seconds as "1h2m3s", "4m5s" or "6s"."""
    seconds = int(elapsed.total_seconds())
    sign = "-" if seconds < 0 else ""
    minutes, secs = divmod(abs(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def _elapsed_since(ts: datetime | None, now: datetime) -> str:
    if ts is None:
        return format_duration(timedelta(0))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return format_duration(now - ts)


def _failing_controller_message(name: str, ctrl: ControllerStatus, now: datetime) -> str:
    return "controller {} is failing since {} ({}x): {}".format(
        name,
        _elapsed_since(ctrl.last_failure_timestamp, now),
        ctrl.consecutive_failure_count,
        ctrl.last_failure_msg,
    )


def ingest_agent_status(
    status: AggregateStatus,
    deployment: str,
    pod: str,
    response: AgentStatusResponse | None,
    fetch_err: Exception | None = None,
    now: datetime | None = None,
) -> None:
    """
    Feed one agent's status payload, or the error fetching it, into the ledger.

    A failed fetch records a single error and nothing of the payload is parsed.
    Only controllers that are currently failing are reported.
    """
    if fetch_err is not None:
        logger.debug("No status from %s/%s: %s", deployment, pod, fetch_err)
        status.add_error(deployment, pod, StatusError(f"unable to retrieve cilium status: {fetch_err}"))
        return
    if response is None:
        response = AgentStatusResponse()

    parse_subsystem_state(status, deployment, pod, "Cilium", response.cilium)
    if response.cluster is not None:
        parse_subsystem_state(status, deployment, pod, "Health", response.cluster.cilium_health)
    parse_subsystem_state(status, deployment, pod, "Hubble", response.hubble)
    parse_subsystem_state(status, deployment, pod, "Kubernetes", response.kubernetes)
    parse_subsystem_state(status, deployment, pod, "Kvstore", response.kvstore)
    parse_subsystem_state(
        status, deployment, pod, "AuthCertificateProvider", response.auth_certificate_provider
    )

    now = now or datetime.now(timezone.utc)
    for ctrl in response.controllers:
        if ctrl.status is None or ctrl.status.consecutive_failure_count == 0:
            continue
        status.add_error(deployment, pod, StatusError(_failing_controller_message(ctrl.name, ctrl.status, now)))


def count_not_ready(endpoints: Iterable[Endpoint | None]) -> int:
    """Count endpoints reporting a state other than ready; unknown states are not counted."""
    not_ready = 0
    for ep in endpoints:
        if ep is None or ep.status is None or ep.status.state is None:
            continue
        if ep.status.state != EndpointState.READY.value:
            not_ready += 1
    return not_ready


def ingest_endpoint_health(
    status: AggregateStatus,
    deployment: str,
    pod: str,
    endpoints: Iterable[Endpoint | None] | None,
    fetch_err: Exception | None = None,
) -> None:
    """Record one warning when any endpoint managed by the agent is not ready."""
    if fetch_err is not None:
        status.add_error(
            deployment, pod, StatusError(f"unable to retrieve cilium endpoint information: {fetch_err}")
        )
        return

    not_ready = count_not_ready(endpoints or [])
    if not_ready > 0:
        status.add_warning(deployment, pod, StatusError(f"{not_ready} endpoints are not ready"))
