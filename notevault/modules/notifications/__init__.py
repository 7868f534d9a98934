"""Notifications Module - in-app notifications."""
from notevault.modules.notifications.models import Notification, NotificationType

__all__ = ["Notification", "NotificationType"]
