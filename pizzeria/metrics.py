import time

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_COUNT = Counter(
    "http_requests_total",
    "HTTP requests",
    ["service", "method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["service", "method", "path"],
)
ORDERS_PROCESSED = Counter(
    "pizzeria_orders_processed_total",
    "Orders run through payment and dispatch",
    ["outcome"],
)
ORDER_STATUS_CHANGES = Counter(
    "pizzeria_order_status_changes_total",
    "Order status assignments",
    ["status"],
)
PAYMENTS = Counter(
    "pizzeria_payments_total",
    "Payment outcomes",
    ["method", "status"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, service_name: str):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        REQUEST_COUNT.labels(self.service_name, request.method, path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(self.service_name, request.method, path).observe(time.perf_counter() - start)
        return response


def metrics_endpoint():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
