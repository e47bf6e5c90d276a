"""Background tasks: the Celery reaper task and the in-process reaper thread."""

from .reaper_scheduler import ReaperScheduler

__all__ = ["ReaperScheduler"]
