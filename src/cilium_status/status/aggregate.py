"""Shared status snapshot mutated by concurrent collectors during one run."""

from __future__ import annotations

import logging
import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_serializer, field_validator

from cilium_status.errors import StatusError
from cilium_status.status.models import (
    AgentStatusResponse,
    Endpoint,
    ErrorCount,
    ErrorCountMapMap,
    MapMapCount,
    PodsCount,
    PodStateCount,
    errors_to_strings,
    strings_to_errors,
)

logger = logging.getLogger(__name__)


def _as_error(err: Exception | str) -> Exception:
    return err if isinstance(err, Exception) else StatusError(err)


class AggregateStatus(BaseModel):
    """
    Overall status of a Cilium installation.

    Every mutator holds the aggregate lock for its whole critical section, so
    any number of collector threads may write concurrently. Readers (report
    rendering, serialization) take no lock: they must only run after the
    driver has joined all writers.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    # component -> image -> number of containers running it
    image_count: MapMapCount = Field(default_factory=dict)
    # component -> pod phase -> number of pods
    phase_count: MapMapCount = Field(default_factory=dict)
    # workload name -> replica counts
    pod_state: dict[str, PodStateCount] = Field(default_factory=dict)
    pods_count: PodsCount = Field(default_factory=PodsCount)
    # agent pod -> raw status payload
    agent_status: dict[str, AgentStatusResponse] = Field(default_factory=dict, alias="cilium_status")
    # agent pod -> raw endpoint list
    agent_endpoints: dict[str, list[Endpoint]] = Field(default_factory=dict, alias="cilium_endpoints")
    errors: ErrorCountMapMap = Field(default_factory=dict)
    collection_errors: list[Exception] = Field(default_factory=list)
    helm_chart_version: str = ""
    config_errors: list[str] = Field(default_factory=list)

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    @field_validator("collection_errors", mode="before")
    @classmethod
    def _wrap_collection_errors(cls, value: Any) -> Any:
        if isinstance(value, list):
            return strings_to_errors(value)
        return value

    @field_serializer("collection_errors")
    def _serialize_collection_errors(self, errs: list[Exception]) -> list[str]:
        return errors_to_strings(errs)

    # Ledger

    def _error_count(self, deployment: str, pod: str) -> ErrorCount:
        """Return the ledger entry for (deployment, pod). Caller holds the lock."""
        pods = self.errors.get(deployment)
        if pods is None:
            pods = {}
            self.errors[deployment] = pods
        entry = pods.get(pod)
        if entry is None:
            entry = ErrorCount()
            pods[pod] = entry
        return entry

    def add_error(self, deployment: str, pod: str, err: Exception | str) -> None:
        err = _as_error(err)
        with self._lock:
            self._error_count(deployment, pod).errors.append(err)
        logger.debug("error recorded for %s/%s: %s", deployment, pod, err)

    def add_warning(self, deployment: str, pod: str, err: Exception | str) -> None:
        err = _as_error(err)
        with self._lock:
            self._error_count(deployment, pod).warnings.append(err)
        logger.debug("warning recorded for %s/%s: %s", deployment, pod, err)

    def set_disabled(self, deployment: str, pod: str, disabled: bool) -> None:
        with self._lock:
            self._error_count(deployment, pod).disabled = disabled

    def record_collection_error(self, err: Exception | str) -> None:
        """Record a failure that cannot be attributed to a single pod."""
        err = _as_error(err)
        with self._lock:
            self.collection_errors.append(err)
        logger.debug("collection error recorded: %s", err)

    def total_errors(self) -> int:
        return sum(len(c.errors) for pods in self.errors.values() for c in pods.values())

    def total_warnings(self) -> int:
        return sum(len(c.warnings) for pods in self.errors.values() for c in pods.values())

    # Counts and raw payloads

    def count_image(self, component: str, image: str, n: int = 1) -> None:
        with self._lock:
            images = self.image_count.setdefault(component, {})
            images[image] = images.get(image, 0) + n

    def count_phase(self, component: str, phase: str, n: int = 1) -> None:
        with self._lock:
            phases = self.phase_count.setdefault(component, {})
            phases[phase] = phases.get(phase, 0) + n

    def set_pod_state(self, name: str, state: PodStateCount) -> None:
        with self._lock:
            self.pod_state[name] = state

    def set_pods_count(self, count: PodsCount) -> None:
        with self._lock:
            self.pods_count = count

    def set_agent_status(self, pod: str, response: AgentStatusResponse) -> None:
        with self._lock:
            self.agent_status[pod] = response

    def set_agent_endpoints(self, pod: str, endpoints: list[Endpoint]) -> None:
        with self._lock:
            self.agent_endpoints[pod] = list(endpoints)

    def set_helm_chart_version(self, version: str) -> None:
        with self._lock:
            self.helm_chart_version = version

    def add_config_error(self, message: str) -> None:
        with self._lock:
            self.config_errors.append(message)

    # Serialization

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize the snapshot; errors and warnings become plain messages."""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, data: str | bytes) -> AggregateStatus:
        return cls.model_validate_json(data)
