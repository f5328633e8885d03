"""Configuration and environment for the status collector."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ComponentNames(BaseModel):
    """Workload names of the Cilium components reported on."""

    agent: str = Field(default="cilium", description="Agent DaemonSet")
    operator: str = Field(default="cilium-operator", description="Operator Deployment")
    envoy: str = Field(default="cilium-envoy", description="Envoy DaemonSet")
    relay: str = Field(default="hubble-relay", description="Hubble Relay Deployment")
    clustermesh: str = Field(default="clustermesh-apiserver", description="ClusterMesh API server Deployment")


class Settings(BaseSettings):
    """Collector settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="CILIUM_STATUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_assignment=True,
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")
    namespace: str = Field(default="kube-system", description="Namespace Cilium is installed in")

    # Cilium layout
    components: ComponentNames = Field(default_factory=ComponentNames)
    agent_container: str = Field(default="cilium-agent", description="Container to exec into on agent pods")
    config_map: str = Field(default="cilium-config", description="Agent configuration ConfigMap")

    # Collection
    workers: int = Field(
        default=10,
        ge=1,
        le=64,
        description="Max number of agent pods queried concurrently",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How long to wait for all agent pods to answer",
    )

    # Output
    output: Literal["text", "summary", "json"] = Field(default="text", description="Report format")
    color: bool = Field(default=True, description="Colorize the text report")


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
