# Core modules

from .config import settings, get_settings, Settings
from .session import CheckoutSession, CheckoutStep, SessionStatus

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "CheckoutSession",
    "CheckoutStep",
    "SessionStatus",
]
