"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Iterable, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_rate_limit_block_total: Dict[Tuple[str], int] = defaultdict(int)
_webhook_triggers_total: Dict[Tuple[str, str], int] = defaultdict(int)
_status_transitions_total: Dict[Tuple[str, str], int] = defaultdict(int)
_execution_actions_total: Dict[Tuple[str, str], int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_rate_limit_block(*, kind: str) -> None:
    with _lock:
        _rate_limit_block_total[(_normalize_label(kind),)] += 1


def record_webhook_trigger(*, automation: str, outcome: str) -> None:
    """Count one outbound automation trigger by outcome (delivered, failed, error)."""

    with _lock:
        _webhook_triggers_total[(_normalize_label(automation), _normalize_label(outcome))] += 1


def record_status_transition(*, from_status: str, to_status: str) -> None:
    with _lock:
        _status_transitions_total[(_normalize_label(from_status), _normalize_label(to_status))] += 1


def record_execution_action(*, action: str, outcome: str) -> None:
    with _lock:
        _execution_actions_total[(_normalize_label(action), _normalize_label(outcome))] += 1


def _counter_lines(
    name: str,
    help_text: str,
    label_names: Tuple[str, ...],
    values: Dict[Tuple[str, ...], int],
) -> Iterable[str]:
    yield f"# HELP {name} {help_text}"
    yield f"# TYPE {name} counter"
    for labels, value in sorted(values.items()):
        rendered = ",".join(
            f'{label}="{_escape_label(item)}"' for label, item in zip(label_names, labels)
        )
        yield f"{name}{{{rendered}}} {value}"


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        rate_limit_total = dict(_rate_limit_block_total)
        webhook_total = dict(_webhook_triggers_total)
        transitions_total = dict(_status_transitions_total)
        execution_total = dict(_execution_actions_total)

    lines = [
        "# HELP launchpad_build_info Build metadata.",
        "# TYPE launchpad_build_info gauge",
        (
            f'launchpad_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP launchpad_process_uptime_seconds Process uptime in seconds.",
        "# TYPE launchpad_process_uptime_seconds gauge",
        f"launchpad_process_uptime_seconds {uptime:.6f}",
    ]

    lines.extend(
        _counter_lines(
            "launchpad_http_requests_total",
            "Total HTTP requests.",
            ("method", "path", "status"),
            http_total,
        )
    )

    lines.extend(
        [
            "# HELP launchpad_http_request_duration_seconds Request duration summary.",
            "# TYPE launchpad_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'launchpad_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'launchpad_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    lines.extend(
        _counter_lines(
            "launchpad_rate_limit_block_total",
            "Requests blocked by rate limiting.",
            ("kind",),
            rate_limit_total,
        )
    )
    lines.extend(
        _counter_lines(
            "launchpad_webhook_triggers_total",
            "Outbound automation triggers by outcome.",
            ("automation", "outcome"),
            webhook_total,
        )
    )
    lines.extend(
        _counter_lines(
            "launchpad_status_transitions_total",
            "Product status transitions applied by the orchestrator.",
            ("from_status", "to_status"),
            transitions_total,
        )
    )
    lines.extend(
        _counter_lines(
            "launchpad_execution_actions_total",
            "Execution management actions by outcome.",
            ("action", "outcome"),
            execution_total,
        )
    )

    return "\n".join(lines) + "\n"


def reset_metrics_for_tests() -> None:
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _rate_limit_block_total.clear()
        _webhook_triggers_total.clear()
        _status_transitions_total.clear()
        _execution_actions_total.clear()
