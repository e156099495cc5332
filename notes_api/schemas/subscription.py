from pydantic import BaseModel, Field
from typing import Optional


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionCreate(BaseModel):
    """Descriptor produced by the browser's PushManager.subscribe()"""
    endpoint: str = Field(..., min_length=1)
    expirationTime: Optional[float] = None
    keys: SubscriptionKeys
