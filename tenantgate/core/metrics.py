"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration (histogram)
- HTTP request count by status code (counter)
- Active requests (gauge)
- Guard denials by guard and error kind (counter)
- Token redemptions by flow and outcome (counter)
- Notification dispatch results (counter)
"""

from prometheus_client import Counter, Gauge, Histogram, Info

from tenantgate import __version__
from tenantgate.config import settings

# Application info
app_info = Info("tenantgate_app", "TenantGate application information")
app_info.info({
    "version": __version__,
    "environment": settings.environment,
})

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method"],
)

# Authorization metrics
guard_denials_total = Counter(
    "guard_denials_total",
    "Requests rejected by an authorization guard",
    ["guard", "kind"],
)

# Credential token metrics
token_redemptions_total = Counter(
    "token_redemptions_total",
    "Credential token redemption attempts",
    ["flow", "outcome"],
)

tokens_created_total = Counter(
    "tokens_created_total",
    "Credential tokens issued",
    ["scope"],
)

# Notification metrics
notifications_total = Counter(
    "notifications_total",
    "Notification dispatch attempts",
    ["kind", "status"],
)
