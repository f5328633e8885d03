"""Observation layer: collect Cilium component state from a Kubernetes cluster."""

from cilium_status.observation.collector import StatusCollector, StatusFetcher
from cilium_status.observation.kube import ExecStatusFetcher, KubernetesClient

__all__ = [
    "ExecStatusFetcher",
    "KubernetesClient",
    "StatusCollector",
    "StatusFetcher",
]
