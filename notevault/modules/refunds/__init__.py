"""Refunds Module - buyer refund requests settled by an admin."""
from notevault.modules.refunds.models import Refund

__all__ = ["Refund"]
