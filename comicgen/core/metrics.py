from __future__ import annotations

from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

registry = CollectorRegistry(auto_describe=True)

PIPELINE_STEP_DURATION = Histogram(
    "comicgen_pipeline_step_duration_seconds",
    "Duration (seconds) of each story generation step.",
    ["step"],
    registry=registry,
)

STORY_GENERATIONS_TOTAL = Counter(
    "comicgen_story_generations_total",
    "Story generations partitioned by provider and outcome.",
    ["provider", "status"],
    registry=registry,
)

JSON_PARSE_FAILURES = Counter(
    "comicgen_json_parse_failures_total",
    "Number of times parsing JSON from a model response failed, labeled by the extraction tier.",
    ["tier"],
    registry=registry,
)

BACKEND_CALL_DURATION = Histogram(
    "comicgen_backend_call_duration_seconds",
    "Latency for model backend calls per provider and operation.",
    ["provider", "operation"],
    registry=registry,
)

BACKEND_CALLS_TOTAL = Counter(
    "comicgen_backend_calls_total",
    "Total model backend calls partitioned by provider, operation and status.",
    ["provider", "operation", "status"],
    registry=registry,
)

COVERAGE_REASSIGNMENTS_TOTAL = Counter(
    "comicgen_coverage_reassignments_total",
    "Panels whose photo was reassigned to cover an unused photo.",
    registry=registry,
)


@contextmanager
def track_pipeline_step(step: str):
    with PIPELINE_STEP_DURATION.labels(step=step).time():
        yield


def increment_json_parse_failure(tier: str) -> None:
    JSON_PARSE_FAILURES.labels(tier=tier).inc()


def record_story_generation(provider: str, status: str) -> None:
    STORY_GENERATIONS_TOTAL.labels(provider=provider, status=status).inc()


def record_coverage_reassignments(count: int) -> None:
    if count:
        COVERAGE_REASSIGNMENTS_TOTAL.inc(count)


@contextmanager
def track_backend_call(provider: str, operation: str):
    timer = BACKEND_CALL_DURATION.labels(provider=provider, operation=operation).time()
    timer.__enter__()
    try:
        yield
        BACKEND_CALLS_TOTAL.labels(provider=provider, operation=operation, status="success").inc()
    except Exception:
        BACKEND_CALLS_TOTAL.labels(provider=provider, operation=operation, status="error").inc()
        raise
    finally:
        timer.__exit__(None, None, None)


def get_metrics_payload() -> bytes:
    return generate_latest(registry)
