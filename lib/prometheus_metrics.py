"""
Prometheus metrics for PromoLink
Following standard naming conventions: https://prometheus.io/docs/practices/naming/
"""
from prometheus_client import Counter, Histogram, Gauge
import time

# ============================================================================
# HTTP Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# ============================================================================
# Webhook Metrics
# ============================================================================

webhooks_received_total = Counter(
    'webhooks_received_total',
    'Total number of webhooks received',
    ['topic', 'outcome']  # outcome: processed, ignored, rejected, error
)

webhook_signature_verifications_total = Counter(
    'webhook_signature_verifications_total',
    'Total webhook signature verification attempts',
    ['result']  # result: success, failure
)

webhook_duration_seconds = Histogram(
    'webhook_duration_seconds',
    'Webhook processing duration in seconds',
    ['topic'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# ============================================================================
# Sales & Commission Metrics
# ============================================================================

sales_recorded_total = Counter(
    'sales_recorded_total',
    'Total number of attributed sales written to the store'
)

commission_amount_dollars = Histogram(
    'commission_amount_dollars',
    'Creator commission per sale in dollars',
    buckets=[0.1, 0.5, 1, 5, 10, 25, 50, 100, 250, 500]
)

platform_fees_total_dollars = Counter(
    'platform_fees_total_dollars',
    'Total platform fees collected in dollars'
)

store_failures_total = Counter(
    'store_failures_total',
    'Store writes that failed or timed out',
    ['operation']
)

# ============================================================================
# Redirect & Click Metrics
# ============================================================================

redirects_total = Counter(
    'redirects_total',
    'Total number of affiliate redirects processed',
    ['status']  # status: success, missing_code, not_found
)

redirect_cache_hits_total = Counter(
    'redirect_cache_hits_total',
    'Total number of redirect cache hits'
)

redirect_cache_misses_total = Counter(
    'redirect_cache_misses_total',
    'Total number of redirect cache misses'
)

# ============================================================================
# Application
# ============================================================================

app_uptime_seconds = Gauge(
    'app_uptime_seconds',
    'Application uptime in seconds'
)

APP_START_TIME = time.time()


def update_uptime():
    """Update application uptime metric"""
    app_uptime_seconds.set(time.time() - APP_START_TIME)
