"""Status layer: aggregate agent health signals and render them."""

from cilium_status.status.aggregate import AggregateStatus
from cilium_status.status.ingest import (
    classify_subsystem_state,
    ingest_agent_status,
    ingest_endpoint_health,
)
from cilium_status.status.models import (
    AgentStatusResponse,
    Endpoint,
    ErrorCount,
    PodsCount,
    PodStateCount,
)
from cilium_status.status.report import StatusReporter

__all__ = [
    "AggregateStatus",
    "AgentStatusResponse",
    "Endpoint",
    "ErrorCount",
    "PodsCount",
    "PodStateCount",
    "StatusReporter",
    "classify_subsystem_state",
    "ingest_agent_status",
    "ingest_endpoint_health",
]
