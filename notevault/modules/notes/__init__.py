"""Notes Module - catalog and seller listings."""
from notevault.modules.notes.models import Note

__all__ = ["Note"]
