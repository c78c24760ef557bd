"""
Integration modules for external systems
"""

from .godspeed import GodspeedIntegration
from .notifier import create_notifier, LogNotifier, NotifySendNotifier, OsascriptNotifier

__all__ = [
    'GodspeedIntegration',
    'create_notifier',
    'LogNotifier',
    'NotifySendNotifier',
    'OsascriptNotifier',
]
