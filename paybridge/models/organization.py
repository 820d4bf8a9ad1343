from datetime import datetime
from typing import TypedDict


class SubscriptionWindow(TypedDict):
    """Новый период подписки организации"""
    start: datetime
    end: datetime
