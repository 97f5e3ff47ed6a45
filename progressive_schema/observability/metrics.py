"""
Prometheus metrics for the schema inference engine

Collectors live on a dedicated registry; the engine only increments them.
Serving the registry (HTTP endpoint, push gateway) is left to the host.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# INGESTION METRICS
# =======================

records_processed_total = Counter(
    name="schema_records_processed_total",
    documentation="Total number of records applied to schema builder state",
    labelnames=["status"],  # status: ok, malformed
    registry=REGISTRY,
)

batches_processed_total = Counter(
    name="schema_batches_processed_total",
    documentation="Total number of batches applied to schema builder state",
    registry=REGISTRY,
)

batch_size = Histogram(
    name="schema_batch_size_records",
    documentation="Number of records in each processed batch",
    buckets=[1, 10, 50, 100, 500, 1000, 5000, 10000],
    registry=REGISTRY,
)

batch_duration_seconds = Histogram(
    name="schema_batch_duration_seconds",
    documentation="Time spent applying a batch in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY,
)

# =======================
# SCHEMA EVOLUTION METRICS
# =======================

schema_changes_total = Counter(
    name="schema_changes_total",
    documentation="Schema change events emitted while processing batches",
    labelnames=["change_type"],  # change_type: new_field, type_change
    registry=REGISTRY,
)

schema_version = Gauge(
    name="schema_builder_version",
    documentation="Schema version of the most recently updated builder state",
    registry=REGISTRY,
)

inference_fallbacks_total = Counter(
    name="schema_inference_fallbacks_total",
    documentation="External inference failures that fell back to the manual schema build",
    labelnames=["error_type"],
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Content type for the Prometheus text format"""
    return CONTENT_TYPE_LATEST
