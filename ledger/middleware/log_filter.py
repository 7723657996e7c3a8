"""Keep dashboard polling out of the development server log."""

import logging
import threading

QUIET_PREFIXES = ("/api/share-price", "/api/valuations", "/healthz")

_request_state = threading.local()


def current_path() -> str:
    return getattr(_request_state, "path", "")


class QuietPollingFilter(logging.Filter):
    """Drop records below WARNING while a polled endpoint is being served."""

    def __init__(self, prefixes=QUIET_PREFIXES):
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        if current_path().startswith(self.prefixes):
            return record.levelno >= logging.WARNING
        return True


class QuietPollingMiddleware:
    """Expose the request path to ``QuietPollingFilter``."""

    logger_name = "django.server"
    _filter = None

    def __init__(self, get_response):
        self.get_response = get_response
        if QuietPollingMiddleware._filter is None:
            QuietPollingMiddleware._filter = QuietPollingFilter()
            logging.getLogger(self.logger_name).addFilter(QuietPollingMiddleware._filter)

    def __call__(self, request):
        previous = current_path()
        _request_state.path = request.path
        try:
            return self.get_response(request)
        finally:
            _request_state.path = previous
