"""Coupons Module - checkout discount codes."""
from notevault.modules.coupons.models import Coupon, CouponUsage

__all__ = ["Coupon", "CouponUsage"]
