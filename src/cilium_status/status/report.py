"""Render an AggregateStatus as a summary, a tabular report or JSON."""

from __future__ import annotations

from rich.text import Text

from cilium_status.config import ComponentNames
from cilium_status.status.aggregate import AggregateStatus
from cilium_status.status.models import MapCount, PodsCount, PodStateCount

RED = "\033[31m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
GREEN = "\033[32m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"
RESET = "\033[0m"

OUTPUT_TEXT = "text"
OUTPUT_SUMMARY = "summary"
OUTPUT_JSON = "json"

COLUMN_PADDING = 4

_PHASE_COLORS = {
    "Failed": RED,
    "Unknown": RED,
    "Running": GREEN,
    "Pending": GREEN,
    "Succeeded": GREEN,
}


def visible_width(cell: str) -> int:
    """Terminal width of a cell, ignoring ANSI escape sequences."""
    return Text.from_ansi(cell).cell_len


def align_columns(rows: list[list[str]], padding: int = COLUMN_PADDING) -> str:
    """
    Lay out rows of cells in aligned columns.

    The last cell of each row is written as-is and does not widen its column,
    so long trailing messages do not push other rows apart. A column is sized
    per block of consecutive rows that have a cell in it: a row with fewer
    cells ends the block, like a line without tabs does for a tabwriter.
    """
    # widths[r][i] is the width of column i for row r
    widths: list[list[int]] = [[0] * max(len(row) - 1, 0) for row in rows]
    columns = max((len(row) - 1 for row in rows), default=0)
    for i in range(columns):
        start = 0
        while start < len(rows):
            if len(rows[start]) - 1 <= i:
                start += 1
                continue
            end = start
            while end < len(rows) and len(rows[end]) - 1 > i:
                end += 1
            width = max(visible_width(rows[r][i]) for r in range(start, end))
            for r in range(start, end):
                widths[r][i] = width
            start = end

    lines = []
    for r, row in enumerate(rows):
        parts = []
        for i, cell in enumerate(row[:-1]):
            parts.append(cell + " " * (widths[r][i] - visible_width(cell) + padding))
        if row:
            parts.append(row[-1])
        lines.append("".join(parts))
    return "\n".join(lines) + "\n"


def envoy_status_summary(summary: str) -> str:
    """Make a bare "disabled" Envoy DaemonSet explicit about the embedded proxy."""
    return summary.replace("disabled", "disabled (using embedded mode)", 1)


class StatusReporter:
    """Read-only projection of a finished AggregateStatus."""

    def __init__(
        self,
        status: AggregateStatus,
        components: ComponentNames | None = None,
        color: bool = True,
    ) -> None:
        self.status = status
        self.components = components or ComponentNames()
        self.color = color

    def _c(self, color: str, text: str) -> str:
        return f"{color}{text}{RESET}" if self.color else text

    def summary_line(self, deployment: str) -> str:
        errors = warnings = 0
        disabled = False
        for entry in self.status.errors.get(deployment, {}).values():
            errors += len(entry.errors)
            warnings += len(entry.warnings)
            disabled = disabled or entry.disabled

        items = []
        if errors > 0:
            items.append(self._c(RED, f"{errors} errors"))
        if warnings > 0:
            items.append(self._c(YELLOW, f"{warnings} warnings"))
        if disabled:
            items.append(self._c(CYAN, "disabled"))
        return ", ".join(items) or self._c(GREEN, "OK")

    def format_pod_state(self, state: PodStateCount) -> str:
        items = []
        if state.desired > 0:
            items.append(f"Desired: {state.desired}")
        if state.ready > 0:
            color = GREEN if state.ready == state.desired else YELLOW
            items.append("Ready: " + self._c(color, f"{state.ready}/{state.desired}"))
        if state.available > 0:
            color = GREEN if state.available == state.desired else YELLOW
            items.append("Available: " + self._c(color, f"{state.available}/{state.desired}"))
        if state.unavailable > 0:
            items.append("Unavailable: " + self._c(RED, f"{state.unavailable}/{state.desired}"))
        return ", ".join(items)

    def format_phase_count(self, phases: MapCount) -> str:
        items = []
        for phase in sorted(phases):
            count = str(phases[phase])
            color = _PHASE_COLORS.get(phase)
            items.append(f"{phase}: " + (self._c(color, count) if color else count))
        return ", ".join(items)

    @staticmethod
    def format_pods_count(count: PodsCount) -> str:
        return f"{count.by_managed_component}/{count.all} managed by Cilium"

    def _banner_rows(self) -> list[list[str]]:
        names = self.components
        if self.color:
            art = [
                YELLOW + "    /¯¯\\" + RESET,
                CYAN + " /¯¯" + YELLOW + "\\__/" + GREEN + "¯¯\\" + RESET,
                CYAN + " \\__" + RED + "/¯¯\\" + GREEN + "__/" + RESET,
                GREEN + " /¯¯" + RED + "\\__/" + MAGENTA + "¯¯\\" + RESET,
                GREEN + " \\__" + BLUE + "/¯¯\\" + MAGENTA + "__/" + RESET,
                BLUE + "    \\__/" + RESET,
            ]
        else:
            art = ["    /¯¯\\", " /¯¯\\__/¯¯\\", " \\__/¯¯\\__/", " /¯¯\\__/¯¯\\", " \\__/¯¯\\__/", "    \\__/"]
        return [
            [art[0]],
            [art[1], "Cilium:", self.summary_line(names.agent)],
            [art[2], "Operator:", self.summary_line(names.operator)],
            [art[3], "Envoy DaemonSet:", envoy_status_summary(self.summary_line(names.envoy))],
            [art[4], "Hubble Relay:", self.summary_line(names.relay)],
            [art[5], "ClusterMesh:", self.summary_line(names.clustermesh)],
        ]

    def summary(self) -> str:
        return align_columns(self._banner_rows())

    def full_report(self) -> str:
        s = self.status
        rows = self._banner_rows()
        rows.append([""])

        for name in sorted(s.pod_state):
            state = s.pod_state[name]
            rows.append([state.kind, name, self.format_pod_state(state)])

        header = "Containers:"
        for name in sorted(s.phase_count):
            rows.append([header, name, self.format_phase_count(s.phase_count[name])])
            header = ""

        rows.append(["Cluster Pods:", self.format_pods_count(s.pods_count)])
        rows.append(["Helm chart version:", s.helm_chart_version])

        header = "Image versions"
        for name in sorted(s.image_count):
            images = s.image_count[name]
            for image in sorted(images):
                rows.append([header, name, f"{image}: {images[image]}"])
                header = ""

        for header, attr in (("Errors:", "errors"), ("Warnings:", "warnings")):
            for deployment in sorted(s.errors):
                pods = s.errors[deployment]
                for pod in sorted(pods):
                    for err in getattr(pods[pod], attr):
                        rows.append([header, deployment, pod, str(err)])
                        header = ""

        header = "Configuration:"
        for msg in s.config_errors:
            for line in msg.split("\n"):
                rows.append([header, " ", line])
                header = ""

        return align_columns(rows)

    def to_json(self) -> str:
        return self.status.to_json()

    def render(self, output: str = OUTPUT_TEXT) -> str:
        if output == OUTPUT_JSON:
            return self.to_json() + "\n"
        if output == OUTPUT_SUMMARY:
            return self.summary()
        return self.full_report()
