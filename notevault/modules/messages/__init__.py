"""Messages Module - direct messages."""
from notevault.modules.messages.models import Message

__all__ = ["Message"]
