"""Wishlist Module."""
from notevault.modules.wishlist.models import WishlistItem

__all__ = ["WishlistItem"]
