"""Reviews Module."""
from notevault.modules.reviews.models import Review

__all__ = ["Review"]
