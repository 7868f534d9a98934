"""Wallet Module - seller earnings and payouts."""
from notevault.modules.wallet.models import PayoutRequest, SellerWallet

__all__ = ["PayoutRequest", "SellerWallet"]
