from .exception_logging import format_exception_message, log_exception_with_details
from .traced_requests import traced_request

__all__ = [
    "format_exception_message",
    "log_exception_with_details",
    "traced_request",
]
