"""Payments Module - checkout, verification and transaction history."""
from notevault.modules.payments.models import (
    OrderStatus,
    PaymentOrder,
    Purchase,
    Transaction,
    TransactionStatus,
)

__all__ = ["OrderStatus", "PaymentOrder", "Purchase", "Transaction", "TransactionStatus"]
