"""Utility modules: logging."""

from mcphub.utils.logging import setup_logging, get_logger, bound_request_id, get_request_id

__all__ = [
    "setup_logging",
    "get_logger",
    "bound_request_id",
    "get_request_id",
]
