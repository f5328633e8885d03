"""Collect the status of a Cilium installation into an AggregateStatus."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Protocol

from kubernetes.client.rest import ApiException

from cilium_status.config import Settings
from cilium_status.errors import FetchError
from cilium_status.status.aggregate import AggregateStatus
from cilium_status.status.ingest import ingest_agent_status, ingest_endpoint_health
from cilium_status.status.models import AgentStatusResponse, Endpoint, PodsCount, PodStateCount

logger = logging.getLogger(__name__)

HELM_CHART_LABEL = "helm.sh/chart"
HELM_CHART_NAME = "cilium"


class StatusFetcher(Protocol):
    def fetch_status(self, pod: str) -> AgentStatusResponse: ...

    def fetch_endpoints(self, pod: str) -> list[Endpoint]: ...


@dataclass(frozen=True)
class Component:
    """A Cilium workload and the selector matching its pods."""

    name: str
    kind: str  # DaemonSet | Deployment
    selector: str


def _daemon_set_state(ds: Any) -> PodStateCount:
    st = ds.status
    return PodStateCount(
        kind="DaemonSet",
        desired=st.desired_number_scheduled or 0,
        ready=st.number_ready or 0,
        available=st.number_available or 0,
        unavailable=st.number_unavailable or 0,
    )


def _deployment_state(d: Any) -> PodStateCount:
    st = d.status
    return PodStateCount(
        kind="Deployment",
        desired=st.replicas or 0,
        ready=st.ready_replicas or 0,
        available=st.available_replicas or 0,
        unavailable=st.unavailable_replicas or 0,
    )


def helm_chart_version(labels: dict[str, str] | None) -> str:
    """Extract the chart version from a "cilium-<version>" chart label."""
    chart = (labels or {}).get(HELM_CHART_LABEL, "")
    prefix = f"{HELM_CHART_NAME}-"
    if not chart.startswith(prefix):
        return ""
    return chart[len(prefix):]


def _as_fetch_error(err: Exception, pod: str) -> FetchError:
    """Any failure while fetching from one agent is that agent's fetch error."""
    if isinstance(err, FetchError):
        return err
    logger.warning("Unexpected error fetching from agent pod %s: %s", pod, err)
    return FetchError(str(err), pod=pod)


class _RunGate:
    """Lets the driver close a run so that late fetch tasks stop writing."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.closed = False
        self.finished: set[str] = set()

    def close(self) -> None:
        with self.lock:
            self.closed = True


class StatusCollector:
    """Fans out status fetches to all agent pods and aggregates the results."""

    def __init__(self, kube: Any, fetcher: StatusFetcher, settings: Settings) -> None:
        self.kube = kube
        self.fetcher = fetcher
        self.settings = settings
        self.namespace = settings.namespace
        names = settings.components
        self.agent = Component(names.agent, "DaemonSet", "k8s-app=cilium")
        self.components = [
            self.agent,
            Component(names.operator, "Deployment", "io.cilium/app=operator"),
            Component(names.envoy, "DaemonSet", "k8s-app=cilium-envoy"),
            Component(names.relay, "Deployment", "k8s-app=hubble-relay"),
            Component(names.clustermesh, "Deployment", "k8s-app=clustermesh-apiserver"),
        ]

    def collect(self) -> AggregateStatus:
        """Collect a full snapshot. The returned status has no remaining writers."""
        status = AggregateStatus()
        agent_pods: list[str] = []

        for comp in self.components:
            workload = self._collect_workload(status, comp)
            if workload is None:
                continue
            pods = self._collect_pods(status, comp)
            if comp is self.agent:
                status.set_helm_chart_version(helm_chart_version(workload.metadata.labels))
                agent_pods = sorted(
                    p.metadata.name for p in pods if getattr(p.status, "phase", None) == "Running"
                )
                self._check_config(status)

        self._collect_agents(status, agent_pods)
        self._collect_pods_count(status)
        return status

    def _collect_workload(self, status: AggregateStatus, comp: Component) -> Any | None:
        try:
            if comp.kind == "DaemonSet":
                workload = self.kube.get_daemon_set(comp.name, self.namespace)
                state = _daemon_set_state(workload)
            else:
                workload = self.kube.get_deployment(comp.name, self.namespace)
                state = _deployment_state(workload)
        except ApiException as e:
            if e.status == 404:
                logger.debug("%s %s not found, marking disabled", comp.kind, comp.name)
                status.set_disabled(comp.name, comp.name, True)
            else:
                logger.warning("Failed to read %s %s: %s", comp.kind, comp.name, e.reason)
                status.record_collection_error(f"unable to retrieve {comp.kind} {comp.name}: {e.reason}")
            return None

        status.set_pod_state(comp.name, state)
        if state.unavailable > 0:
            status.add_error(
                comp.name, comp.name, f"{state.unavailable} pods of {comp.kind} {comp.name} are not ready"
            )
        return workload

    def _collect_pods(self, status: AggregateStatus, comp: Component) -> list[Any]:
        try:
            pods = self.kube.list_pods(self.namespace, comp.selector)
        except ApiException as e:
            logger.warning("Failed to list pods of %s: %s", comp.name, e.reason)
            status.record_collection_error(f"unable to list pods of {comp.kind} {comp.name}: {e.reason}")
            return []

        for pod in pods:
            status.count_phase(comp.name, getattr(pod.status, "phase", None) or "Unknown")
            for container in getattr(pod.spec, "containers", []) or []:
                status.count_image(comp.name, container.image)
        return pods

    def _check_config(self, status: AggregateStatus) -> None:
        try:
            self.kube.get_config_map(self.settings.config_map, self.namespace)
        except ApiException as e:
            if e.status == 404:
                status.add_config_error(
                    f"ConfigMap {self.namespace}/{self.settings.config_map} not found\n"
                    "agents are running without their configuration"
                )
            else:
                logger.warning("Failed to read ConfigMap %s: %s", self.settings.config_map, e.reason)
                status.record_collection_error(
                    f"unable to retrieve ConfigMap {self.settings.config_map}: {e.reason}"
                )

    def _collect_agent(self, status: AggregateStatus, gate: _RunGate, pod: str) -> None:
        response: AgentStatusResponse | None = None
        endpoints: list[Endpoint] | None = None
        status_err: Exception | None = None
        endpoints_err: Exception | None = None
        try:
            response = self.fetcher.fetch_status(pod)
        except Exception as e:
            status_err = _as_fetch_error(e, pod)
        try:
            endpoints = self.fetcher.fetch_endpoints(pod)
        except Exception as e:
            endpoints_err = _as_fetch_error(e, pod)

        with gate.lock:
            if gate.closed:
                logger.debug("Dropping late result of agent pod %s", pod)
                return
            if response is not None:
                status.set_agent_status(pod, response)
            if endpoints is not None:
                status.set_agent_endpoints(pod, endpoints)
            ingest_agent_status(status, self.agent.name, pod, response, status_err)
            ingest_endpoint_health(status, self.agent.name, pod, endpoints, endpoints_err)
            gate.finished.add(pod)

    def _collect_agents(self, status: AggregateStatus, pods: list[str]) -> None:
        if not pods:
            return
        gate = _RunGate()
        pool = ThreadPoolExecutor(max_workers=self.settings.workers, thread_name_prefix="cilium-status")
        try:
            futures = {pool.submit(self._collect_agent, status, gate, pod): pod for pod in pods}
            done, _ = wait(futures, timeout=self.settings.timeout_seconds)
        finally:
            gate.close()
            pool.shutdown(wait=False, cancel_futures=True)

        failed = set()
        for future in sorted(done, key=futures.get):
            err = future.exception()
            if err is not None:
                failed.add(futures[future])
                logger.warning("Collecting agent pod %s failed: %s", futures[future], err)
                status.record_collection_error(f"unable to collect status of pod {futures[future]}: {err}")
        late = [pod for pod in pods if pod not in gate.finished and pod not in failed]
        if late:
            status.record_collection_error(
                f"timed out after {self.settings.timeout_seconds:g}s waiting for agent pods: {', '.join(late)}"
            )

    def _collect_pods_count(self, status: AggregateStatus) -> None:
        try:
            pods = self.kube.list_all_pods()
        except ApiException as e:
            logger.warning("Failed to list cluster pods: %s", e.reason)
            status.record_collection_error(f"unable to list pods: {e.reason}")
            return
        managed = sum(1 for p in pods if not getattr(p.spec, "host_network", False))
        status.set_pods_count(PodsCount(all=len(pods), by_managed_component=managed))
