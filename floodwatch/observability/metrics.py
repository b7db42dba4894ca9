"""
Metrics definitions for Galle Flood Watch.

This module defines Prometheus metrics for monitoring
the incident store and the location search.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
incident_mutations = Counter(
    "incident_mutations_total",
    "Number of committed incident store mutations",
    ["op"]
)

incident_persist_failures = Counter(
    "incident_persist_failures_total",
    "Number of failed writes of the incident collection to the durable slot"
)

geocode_requests = Counter(
    "geocode_requests_total",
    "Geocoder requests by outcome",
    ["outcome"]
)

searches_rejected = Counter(
    "searches_rejected_total",
    "Location searches rejected before reaching the geocoder",
    ["reason"]
)

# 히스토그램 메트릭
geocode_seconds = Histogram(
    "geocode_duration_seconds",
    "Time spent waiting for the geocoder",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# 게이지 메트릭
incident_store_size = Gauge(
    "incident_store_size",
    "Current number of incidents in the store"
)

incident_store_active = Gauge(
    "incident_store_active",
    "Current number of active incidents"
)

uptime_seconds = Gauge(
    "uptime_seconds",
    "Service uptime in seconds"
)
