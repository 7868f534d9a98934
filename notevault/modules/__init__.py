"""
NoteVault Backend Modules

- auth: Registration, login, sessions, profile
- content: Categories, universities, sitemap
- notes: Catalog, listing management, downloads
- payments: Orders, gateway verification, transactions, purchases
- coupons: Discount codes applied at checkout
- refunds: Buyer refund requests and admin settlement
- wallet: Seller earnings, escrow release, payout requests
- messages: Direct messages between users
- notifications: In-app notifications
- reviews: Ratings on purchased notes
- wishlist: Saved notes

Importing this package registers every model on ``Base.metadata``.
"""
from notevault.modules.auth.models import User, UserSession
from notevault.modules.content.models import Category, University
from notevault.modules.coupons.models import Coupon, CouponUsage
from notevault.modules.messages.models import Message
from notevault.modules.notes.models import Note
from notevault.modules.notifications.models import Notification
from notevault.modules.payments.models import PaymentOrder, Purchase, Transaction
from notevault.modules.refunds.models import Refund
from notevault.modules.reviews.models import Review
from notevault.modules.wallet.models import PayoutRequest, SellerWallet
from notevault.modules.wishlist.models import WishlistItem

__all__ = [
    "User",
    "UserSession",
    "Category",
    "University",
    "Coupon",
    "CouponUsage",
    "Message",
    "Note",
    "Notification",
    "PaymentOrder",
    "Purchase",
    "Transaction",
    "Refund",
    "Review",
    "PayoutRequest",
    "SellerWallet",
    "WishlistItem",
]
