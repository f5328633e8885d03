"""Runner: collect → aggregate → render."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TextIO

from cilium_status.config import Settings, get_settings
from cilium_status.observation import ExecStatusFetcher, KubernetesClient, StatusCollector
from cilium_status.status import AggregateStatus, StatusReporter

logger = logging.getLogger(__name__)


@dataclass
class StatusResult:
    """Result of a full status run."""

    status: AggregateStatus
    report: str

    @property
    def healthy(self) -> bool:
        return self.status.total_errors() == 0 and not self.status.collection_errors


def run_status(
    settings: Settings | None = None,
    collector: StatusCollector | None = None,
) -> StatusResult:
    """
    Collect the status of every Cilium component and render it in the configured format.
    """
    opts = settings or get_settings()
    if collector is None:
        kube = KubernetesClient(
            kubeconfig=str(opts.kubeconfig) if opts.kubeconfig else None,
            context=opts.context,
        )
        fetcher = ExecStatusFetcher(
            kube,
            namespace=opts.namespace,
            container=opts.agent_container,
            timeout_seconds=opts.timeout_seconds,
        )
        collector = StatusCollector(kube, fetcher, opts)

    status = collector.collect()
    logger.info(
        "Collected status: %d errors, %d warnings, %d collection errors",
        status.total_errors(),
        status.total_warnings(),
        len(status.collection_errors),
    )

    reporter = StatusReporter(status, components=opts.components, color=opts.color)
    return StatusResult(status=status, report=reporter.render(opts.output))


def print_result(result: StatusResult, out: TextIO | None = None, err: TextIO | None = None) -> None:
    """Write the report, then any collection errors, which are not part of the report."""
    out = out or sys.stdout
    err = err or sys.stderr
    out.write(result.report)
    for e in result.status.collection_errors:
        print(f"Error: {e}", file=err)
