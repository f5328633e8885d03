"""Tests for the summary lines and the tabular report."""

import pytest

from cilium_status.status import AggregateStatus, PodsCount, PodStateCount, StatusReporter
from cilium_status.status.report import (
    CYAN,
    GREEN,
    RED,
    RESET,
    YELLOW,
    align_columns,
    envoy_status_summary,
    visible_width,
)


def build_status(reverse=False) -> AggregateStatus:
    status = AggregateStatus()
    pods = ["cilium-b", "cilium-a"]
    phases = [("cilium", "Running", 2), ("cilium-operator", "Running", 1), ("cilium", "Failed", 1)]
    images = [("cilium", "quay.io/cilium/cilium:v1.16.0", 2), ("cilium-operator", "quay.io/cilium/operator:v1.16.0", 1)]
    if reverse:
        pods.reverse()
        phases.reverse()
        images.reverse()

    status.set_pod_state("cilium-operator", PodStateCount(kind="Deployment", desired=2, ready=2, available=2))
    status.set_pod_state("cilium", PodStateCount(kind="DaemonSet", desired=3, ready=2, available=2, unavailable=1))
    for component, phase, n in phases:
        status.count_phase(component, phase, n)
    for component, image, n in images:
        status.count_image(component, image, n)
    status.set_pods_count(PodsCount(all=10, by_managed_component=8))
    status.set_helm_chart_version("1.16.0")
    for pod in pods:
        status.add_error("cilium", pod, f"{pod}: Kvstore: unreachable")
        status.add_warning("cilium", pod, f"{pod}: 1 endpoints are not ready")
    status.set_disabled("cilium-envoy", "cilium-envoy", True)
    status.add_config_error("first line\nsecond line")
    return status


def test_summary_line_ok_when_nothing_recorded(status):
    assert StatusReporter(status).summary_line("cilium") == GREEN + "OK" + RESET


def test_summary_line_lists_errors_warnings_disabled_in_order(status):
    status.add_error("cilium", "a", "e1")
    status.add_error("cilium", "b", "e2")
    status.add_warning("cilium", "a", "w1")
    status.set_disabled("cilium", "c", True)

    line = StatusReporter(status).summary_line("cilium")

    assert line == f"{RED}2 errors{RESET}, {YELLOW}1 warnings{RESET}, {CYAN}disabled{RESET}"


def test_summary_line_omits_absent_parts(status):
    status.set_disabled("hubble-relay", "hubble-relay", True)
    status.add_warning("cilium", "a", "w1")

    reporter = StatusReporter(status, color=False)
    assert reporter.summary_line("hubble-relay") == "disabled"
    assert reporter.summary_line("cilium") == "1 warnings"
    assert reporter.summary_line("cilium-operator") == "OK"


def test_disabled_false_is_ok(status):
    status.set_disabled("cilium", "a", False)
    assert StatusReporter(status, color=False).summary_line("cilium") == "OK"


def test_envoy_disabled_is_explained():
    assert envoy_status_summary(CYAN + "disabled" + RESET) == CYAN + "disabled (using embedded mode)" + RESET
    assert envoy_status_summary("OK") == "OK"

    report = StatusReporter(build_status(), color=False).full_report()
    envoy_line = next(line for line in report.splitlines() if "Envoy DaemonSet:" in line)
    assert envoy_line.endswith("disabled (using embedded mode)")


def test_pod_state_formatting():
    reporter = StatusReporter(AggregateStatus())
    state = PodStateCount(kind="DaemonSet", desired=3, ready=2, available=3, unavailable=1)

    assert reporter.format_pod_state(state) == (
        f"Desired: 3, Ready: {YELLOW}2/3{RESET}, Available: {GREEN}3/3{RESET}, Unavailable: {RED}1/3{RESET}"
    )
    assert reporter.format_pod_state(PodStateCount(kind="Deployment", desired=1)) == "Desired: 1"
    assert reporter.format_pod_state(PodStateCount()) == ""


def test_phase_count_is_sorted_and_colored():
    reporter = StatusReporter(AggregateStatus())

    text = reporter.format_phase_count({"Running": 2, "Failed": 1, "Evicted": 4})

    assert text == f"Evicted: 4, Failed: {RED}1{RESET}, Running: {GREEN}2{RESET}"


def test_full_report_sections_are_in_order():
    report = StatusReporter(build_status(), color=False).full_report()

    markers = [
        "Cilium:",
        "Operator:",
        "Envoy DaemonSet:",
        "Hubble Relay:",
        "ClusterMesh:",
        "Deployment",
        "Containers:",
        "Cluster Pods:",
        "Helm chart version:",
        "Image versions",
        "Errors:",
        "Warnings:",
        "Configuration:",
    ]
    positions = [report.index(m) for m in markers]
    assert positions == sorted(positions)
    assert report.index("DaemonSet    ") < report.index("Deployment")
    assert "8/10 managed by Cilium" in report


def test_repeated_labels_are_blanked():
    report = StatusReporter(build_status(), color=False).full_report()
    lines = report.splitlines()

    assert report.count("Errors:") == 1
    assert report.count("Warnings:") == 1
    assert report.count("Containers:") == 1
    assert report.count("Image versions") == 1
    error_lines = [line for line in lines if "Kvstore: unreachable" in line]
    assert [line.split()[-3] for line in error_lines] == ["cilium-a:", "cilium-b:"]
    assert error_lines[0].startswith("Errors:")
    assert error_lines[1].startswith(" ")


def test_config_errors_are_split_into_rows():
    lines = StatusReporter(build_status(), color=False).full_report().splitlines()

    config_lines = lines[-2:]
    assert config_lines[0].startswith("Configuration:")
    assert config_lines[0].endswith("first line")
    assert config_lines[1].strip() == "second line"
    assert config_lines[0].index("first line") == config_lines[1].index("second line")


def test_columns_are_aligned():
    lines = StatusReporter(build_status(), color=False).full_report().splitlines()

    pods_line = next(line for line in lines if line.startswith("Cluster Pods:"))
    helm_line = next(line for line in lines if line.startswith("Helm chart version:"))
    column = len("Helm chart version:") + 4
    assert pods_line.index("8/10") == column
    assert helm_line.index("1.16.0") == column


def test_colored_report_aligns_like_plain_report():
    colored = StatusReporter(build_status()).full_report().splitlines()
    plain = StatusReporter(build_status(), color=False).full_report().splitlines()

    for c, p in zip(colored, plain):
        assert visible_width(c) == visible_width(p)


@pytest.mark.parametrize("color", [True, False])
def test_rendering_is_deterministic(color):
    first = StatusReporter(build_status(), color=color).full_report()
    again = StatusReporter(build_status(), color=color).full_report()
    reordered = StatusReporter(build_status(reverse=True), color=color).full_report()

    assert first == again == reordered


def test_align_columns_ignores_last_cell_width():
    text = align_columns([["a", "bb", "a very long trailing message"], ["ccc", "d", "x"]], padding=2)

    assert text == "a    bb  a very long trailing message\nccc  d   x\n"


def test_visible_width_ignores_escapes():
    assert visible_width(RED + "3 errors" + RESET) == len("3 errors")


def test_render_modes():
    reporter = StatusReporter(build_status(), color=False)

    assert reporter.render("summary") == reporter.summary()
    assert "Containers:" not in reporter.summary()
    assert reporter.render("json").startswith("{")
    assert reporter.render("text") == reporter.full_report()


def test_banner_is_aligned_on_its_own():
    lines = StatusReporter(build_status(), color=False).full_report().splitlines()

    cilium_line = next(line for line in lines if "Cilium:" in line)
    envoy_line = next(line for line in lines if "Envoy DaemonSet:" in line)
    # 11-cell art column and 16-cell label column, each padded by 4
    assert cilium_line.index("Cilium:") == 15
    assert envoy_line.index("Envoy DaemonSet:") == 15
    assert cilium_line.index("2 errors") == 15 + len("Envoy DaemonSet:") + 4


def test_rows_without_a_cell_end_the_column_block():
    text = align_columns([["a", "x"], ["b"], ["long cell", "y"], ["c", "z"]], padding=1)

    assert text == "a x\nb\nlong cell y\nc         z\n"
