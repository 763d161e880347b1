"""
Prometheus metrics collection.
"""
from prometheus_client import Counter, Histogram, CollectorRegistry

# Create a custom registry
registry = CollectorRegistry()

# Cache metrics
cache_lookup_count = Counter(
    "overlay_cache_lookups_total",
    "Overlay pack cache lookups",
    ["result"],  # hit, miss, error
    registry=registry,
)

cache_write_count = Counter(
    "overlay_cache_writes_total",
    "Overlay pack cache writes",
    ["status"],
    registry=registry,
)

# Generation metrics
generation_count = Counter(
    "overlay_generation_total",
    "Overlay pack generation runs by terminal state",
    ["state"],
    registry=registry,
)

generation_duration = Histogram(
    "overlay_generation_duration_seconds",
    "Overlay pack generation duration",
    ["state"],
    buckets=(1, 2.5, 5, 10, 20, 30, 45, 60, 90),
    registry=registry,
)

singleflight_join_count = Counter(
    "overlay_singleflight_joins_total",
    "Requests that joined an in-flight generation",
    registry=registry,
)

# Provider metrics
provider_call_count = Counter(
    "overlay_provider_calls_total",
    "External provider calls",
    ["provider", "phase", "status"],
    registry=registry,
)
