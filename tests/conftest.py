"""Shared fixtures and fake Kubernetes objects."""

from __future__ import annotations

import threading
from types import SimpleNamespace

import pytest
from kubernetes.client.rest import ApiException

from cilium_status.config import Settings
from cilium_status.errors import FetchError
from cilium_status.status import AggregateStatus


@pytest.fixture
def status() -> AggregateStatus:
    return AggregateStatus()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, timeout_seconds=5, workers=4)


def make_daemon_set(desired, ready, available, unavailable=0, labels=None):
    return SimpleNamespace(
        metadata=SimpleNamespace(labels=labels or {}),
        status=SimpleNamespace(
            desired_number_scheduled=desired,
            number_ready=ready,
            number_available=available,
            number_unavailable=unavailable,
        ),
    )


def make_deployment(replicas, ready, available, unavailable=None):
    return SimpleNamespace(
        metadata=SimpleNamespace(labels={}),
        status=SimpleNamespace(
            replicas=replicas,
            ready_replicas=ready,
            available_replicas=available,
            unavailable_replicas=unavailable,
        ),
    )


def make_pod(name, phase="Running", images=(), host_network=False):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name),
        status=SimpleNamespace(phase=phase),
        spec=SimpleNamespace(
            containers=[SimpleNamespace(image=image) for image in images],
            host_network=host_network,
        ),
    )


def not_found():
    return ApiException(status=404, reason="Not Found")


class FakeKube:
    """In-memory stand-in for KubernetesClient."""

    def __init__(self, daemon_sets=None, deployments=None, pods=None, all_pods=None, config_maps=None):
        self.daemon_sets = daemon_sets or {}
        self.deployments = deployments or {}
        self.pods = pods or {}
        self.all_pods = all_pods or []
        self.config_maps = config_maps if config_maps is not None else {"cilium-config": object()}

    @staticmethod
    def _get(objects, name):
        obj = objects.get(name)
        if obj is None:
            raise not_found()
        if isinstance(obj, Exception):
            raise obj
        return obj

    def get_daemon_set(self, name, namespace):
        return self._get(self.daemon_sets, name)

    def get_deployment(self, name, namespace):
        return self._get(self.deployments, name)

    def get_config_map(self, name, namespace):
        return self._get(self.config_maps, name)

    def list_pods(self, namespace, label_selector):
        return self.pods.get(label_selector, [])

    def list_all_pods(self):
        if isinstance(self.all_pods, Exception):
            raise self.all_pods
        return self.all_pods


class FakeFetcher:
    """Returns canned payloads per pod; exceptions in the tables are raised."""

    def __init__(self, statuses=None, endpoints=None, block=None):
        self.statuses = statuses or {}
        self.endpoints = endpoints or {}
        self.block = block or {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch_status(self, pod):
        with self._lock:
            self.calls.append(pod)
        if pod in self.block:
            self.block[pod].wait(10)
        result = self.statuses.get(pod)
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_endpoints(self, pod):
        result = self.endpoints.get(pod, [])
        if isinstance(result, Exception):
            raise result
        return result


def fetch_failure(message):
    return FetchError(message)
