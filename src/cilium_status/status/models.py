"""Structured models for agent payloads and the status ledger."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from cilium_status.errors import StatusError

# label -> occurrences, e.g. image name or pod phase
MapCount = dict[str, int]

# component name -> MapCount
MapMapCount = dict[str, MapCount]


def errors_to_strings(errs: list[Exception]) -> list[str]:
    """Reduce error values to their messages for serialization."""
    return [str(e) for e in errs]


def strings_to_errors(values: list[Any]) -> list[Exception]:
    """Inverse of errors_to_strings; error values pass through untouched."""
    return [v if isinstance(v, Exception) else StatusError(str(v)) for v in values]


class _Payload(BaseModel):
    """Base for collaborator payloads: camel/kebab aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SubsystemStatus(_Payload):
    """State and message of one agent subsystem."""

    state: str = ""
    msg: str = ""


class ClusterStatus(_Payload):
    cilium_health: SubsystemStatus | None = Field(default=None, alias="ciliumHealth")


class ControllerStatus(_Payload):
    """Run statistics of a background controller inside the agent."""

    consecutive_failure_count: int = Field(default=0, alias="consecutive-failure-count")
    failure_count: int = Field(default=0, alias="failure-count")
    success_count: int = Field(default=0, alias="success-count")
    last_failure_msg: str = Field(default="", alias="last-failure-msg")
    last_failure_timestamp: datetime | None = Field(default=None, alias="last-failure-timestamp")
    last_success_timestamp: datetime | None = Field(default=None, alias="last-success-timestamp")


class Controller(_Payload):
    name: str = ""
    status: ControllerStatus | None = None


class AgentStatusResponse(_Payload):
    """Status document reported by one agent (`cilium-dbg status -o json`)."""

    cilium: SubsystemStatus | None = None
    cluster: ClusterStatus | None = None
    hubble: SubsystemStatus | None = None
    kubernetes: SubsystemStatus | None = None
    kvstore: SubsystemStatus | None = None
    auth_certificate_provider: SubsystemStatus | None = Field(
        default=None, alias="auth-certificate-provider"
    )
    controllers: list[Controller] = Field(default_factory=list)


class EndpointState(str, Enum):
    """Lifecycle states of an endpoint managed by an agent."""

    WAITING_FOR_IDENTITY = "waiting-for-identity"
    NOT_READY = "not-ready"
    WAITING_TO_REGENERATE = "waiting-to-regenerate"
    REGENERATING = "regenerating"
    RESTORING = "restoring"
    READY = "ready"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"
    INVALID = "invalid"


class EndpointStatus(_Payload):
    # Kept as a plain string so that states added by newer agents still parse.
    state: str | None = None


class Endpoint(_Payload):
    id: int | None = None
    status: EndpointStatus | None = None


class ErrorCount(BaseModel):
    """Errors, warnings and the disabled flag of one pod of one deployment."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    errors: list[Exception] = Field(default_factory=list)
    warnings: list[Exception] = Field(default_factory=list)
    disabled: bool = False

    @field_validator("errors", "warnings", mode="before")
    @classmethod
    def _wrap_messages(cls, value: Any) -> Any:
        if isinstance(value, list):
            return strings_to_errors(value)
        return value

    @field_serializer("errors", "warnings")
    def _serialize_errors(self, errs: list[Exception]) -> list[str]:
        return errors_to_strings(errs)


# pod name -> ErrorCount
ErrorCountMap = dict[str, ErrorCount]

# deployment name -> ErrorCountMap
ErrorCountMapMap = dict[str, ErrorCountMap]


class PodStateCount(BaseModel):
    """Replica counts of one workload, copied verbatim from its status."""

    model_config = ConfigDict(populate_by_name=True)

    kind: str = Field(default="", alias="type")  # DaemonSet | Deployment
    desired: int = 0
    ready: int = 0
    available: int = 0
    unavailable: int = 0


class PodsCount(BaseModel):
    """Cluster-wide pod totals."""

    model_config = ConfigDict(populate_by_name=True)

    all: int = 0
    by_managed_component: int = Field(default=0, alias="by_cilium")
