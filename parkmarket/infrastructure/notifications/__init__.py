from .logging_notifier import log_notification

__all__ = ["log_notification"]
