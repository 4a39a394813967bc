"""Best-effort transactional email notifications."""
from .email import HttpEmailNotifier, LogNotifier, NotificationError, Notifier, notify_best_effort

__all__ = ["HttpEmailNotifier", "LogNotifier", "NotificationError", "Notifier", "notify_best_effort"]
