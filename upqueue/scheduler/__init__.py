"""Periodic maintenance tasks the host application schedules."""

from upqueue.scheduler.stale_upload_cleanup import stale_upload_cleanup_task

__all__ = ["stale_upload_cleanup_task"]
