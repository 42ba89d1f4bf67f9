"""Observability utilities."""

from upqueue.observability.error_log_file import setup_error_log_file

__all__ = ["setup_error_log_file"]
