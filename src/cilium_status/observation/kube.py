"""Kubernetes access for the collector: workload reads and agent exec calls."""

from __future__ import annotations

import logging
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.stream import stream
from pydantic import TypeAdapter, ValidationError
from websocket import WebSocketException

from cilium_status.errors import FetchError
from cilium_status.status.models import AgentStatusResponse, Endpoint

logger = logging.getLogger(__name__)

STATUS_COMMAND = ["cilium-dbg", "status", "-o", "json"]
ENDPOINT_LIST_COMMAND = ["cilium-dbg", "endpoint", "list", "-o", "json"]

_endpoint_list = TypeAdapter(list[Endpoint])


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    try:
        config.load_incluster_config()
        return client.Configuration.get_default_copy()
    except config.ConfigException:
        pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


class KubernetesClient:
    """Thin wrapper over the Core and Apps APIs used during a status run."""

    def __init__(self, kubeconfig: str | None = None, context: str | None = None) -> None:
        cfg = _load_kube_config(kubeconfig, context)
        api = client.ApiClient(cfg)
        self._core = client.CoreV1Api(api)
        self._apps = client.AppsV1Api(api)

    def get_daemon_set(self, name: str, namespace: str) -> Any:
        return self._apps.read_namespaced_daemon_set(name=name, namespace=namespace)

    def get_deployment(self, name: str, namespace: str) -> Any:
        return self._apps.read_namespaced_deployment(name=name, namespace=namespace)

    def get_config_map(self, name: str, namespace: str) -> Any:
        return self._core.read_namespaced_config_map(name=name, namespace=namespace)

    def list_pods(self, namespace: str, label_selector: str) -> list[Any]:
        return self._core.list_namespaced_pod(namespace=namespace, label_selector=label_selector).items

    def list_all_pods(self) -> list[Any]:
        return self._core.list_pod_for_all_namespaces().items

    def exec_in_pod(
        self,
        namespace: str,
        pod: str,
        container: str,
        command: list[str],
        timeout_seconds: float | None = None,
    ) -> str:
        """
        Run a command in a container and return its stdout.

        A non-zero exit, or a command still running after timeout_seconds, raises FetchError.
        """
        logger.debug("exec %s in %s/%s", " ".join(command), namespace, pod)
        resp = stream(
            self._core.connect_get_namespaced_pod_exec,
            pod,
            namespace,
            container=container,
            command=command,
            stderr=True,
            stdin=False,
            stdout=True,
            tty=False,
            _preload_content=False,
        )
        try:
            resp.run_forever(timeout=timeout_seconds)
            stdout = resp.read_stdout() or ""
            stderr = resp.read_stderr() or ""
            returncode = resp.returncode
        finally:
            resp.close()
        if returncode is None:
            raise FetchError(
                f"command {' '.join(command)!r} did not finish within {timeout_seconds}s", pod=pod
            )
        if returncode:
            raise FetchError(
                f"command {' '.join(command)!r} exited with code {returncode}: {stderr.strip()}",
                pod=pod,
            )
        return stdout


class ExecStatusFetcher:
    """Fetch agent status and endpoint payloads by exec'ing the agent debug CLI."""

    def __init__(
        self,
        kube: KubernetesClient,
        namespace: str,
        container: str = "cilium-agent",
        timeout_seconds: float | None = None,
    ) -> None:
        self.kube = kube
        self.namespace = namespace
        self.container = container
        self.timeout_seconds = timeout_seconds

    def _exec(self, pod: str, command: list[str]) -> str:
        try:
            return self.kube.exec_in_pod(
                self.namespace, pod, self.container, command, timeout_seconds=self.timeout_seconds
            )
        except ApiException as e:
            raise FetchError(f"exec failed: {e.reason}", pod=pod) from e
        except (WebSocketException, OSError) as e:
            raise FetchError(f"exec failed: {e}", pod=pod) from e
        except (KeyError, ValueError) as e:
            # returncode parsing fails on statuses such as "OCI runtime exec failed"
            raise FetchError(f"exec failed: unreadable exit status: {e}", pod=pod) from e

    def fetch_status(self, pod: str) -> AgentStatusResponse:
        out = self._exec(pod, STATUS_COMMAND)
        if not out.strip():
            # No payload and no error is treated as an empty, healthy response.
            return AgentStatusResponse()
        try:
            return AgentStatusResponse.model_validate_json(out)
        except ValidationError as e:
            raise FetchError(f"invalid status payload: {e.error_count()} validation errors", pod=pod) from e

    def fetch_endpoints(self, pod: str) -> list[Endpoint]:
        out = self._exec(pod, ENDPOINT_LIST_COMMAND)
        if not out.strip():
            return []
        try:
            return _endpoint_list.validate_json(out)
        except ValidationError as e:
            raise FetchError(f"invalid endpoint payload: {e.error_count()} validation errors", pod=pod) from e
