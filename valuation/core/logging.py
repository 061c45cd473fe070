import logging
import sys

from pythonjsonlogger import jsonlogger

from valuation.core.config import Settings
from valuation.core.middleware import request_id_var


class RequestContextFilter(logging.Filter):
    """Stamps app, environment and the current request id on every record."""

    def __init__(self, settings: Settings):
        super().__init__()
        self.app_name = settings.app_name
        self.environment = settings.environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.app = self.app_name
        record.env = self.environment
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


def configure_logging(settings: Settings) -> None:
    """
    JSON logs on stdout; service code adds context through `extra=`.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter(settings))
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(app)s %(env)s",
            rename_fields={"levelname": "level", "name": "logger"},
        )
    )
    root.addHandler(handler)

    for name in ("uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
    logging.getLogger("reportlab").setLevel(max(level, logging.WARNING))
