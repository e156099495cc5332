from .note import Note
from .setting import Setting
from .push_subscription import PushSubscription

__all__ = ["Note", "Setting", "PushSubscription"]
