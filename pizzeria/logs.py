import logging
from contextvars import ContextVar

from . import config

SERVICE_NAME = "pizzeria-service"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [pizzeria-service] [cid=%(correlation_id)s] %(message)s"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

logger = logging.getLogger(SERVICE_NAME)


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the correlation id of the current request."""

    def filter(self, record):
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(level=None):
    logging.basicConfig(level=level or config.LOG_LEVEL, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())
