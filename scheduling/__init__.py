from __future__ import annotations  # Re-export scheduling public API

from .scheduling import COLLECTION, CONFIRMATION_TEMPLATE, ScheduleService, ScheduledInterview

__all__ = ["COLLECTION", "CONFIRMATION_TEMPLATE", "ScheduleService", "ScheduledInterview"]
