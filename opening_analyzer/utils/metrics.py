"""
Centralized Prometheus metrics definitions for the Opening Analyzer.

This module uses the prometheus-client library to define all metrics that will
be exposed by the application for monitoring and alerting. Grouping them here
provides a single, clear overview of the application's instrumentation points.
"""
from prometheus_client import Counter, Gauge, Histogram

# A common prefix for all application-specific metrics.
PREFIX = "opening_analyzer"

# --- Catalogue Metrics ---

CATALOGUE_ENTRIES = Gauge(
    f"{PREFIX}_catalogue_entries",
    "Number of opening entries in the loaded catalogue.",
)

CATALOGUE_INDEXED_KEYS = Gauge(
    f"{PREFIX}_catalogue_indexed_keys",
    "Number of distinct canonical positions in the catalogue index.",
)

# --- Classification Metrics ---

CLASSIFICATIONS_TOTAL = Counter(
    f"{PREFIX}_classifications_total",
    "Total number of classification calls, by outcome.",
    ["status"],  # e.g., status="matched", "no_match", "no_moves"
)

CLASSIFICATION_DURATION_SECONDS = Histogram(
    f"{PREFIX}_classification_duration_seconds",
    "Histogram of the time taken to classify a single game.",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, float("inf"))
)

# --- Delivery Metrics ---

RESULT_DISPATCH_TOTAL = Counter(
    f"{PREFIX}_result_dispatch_total",
    "Total number of result deliveries to the downstream consumer, by outcome.",
    ["outcome"],  # e.g., outcome="delivered", "timeout", "failed"
)
