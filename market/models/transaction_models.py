# market/models/transaction_models.py
from decimal import Decimal
import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Text, DateTime, ForeignKey, Enum, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from market.core.db import Base, BigId


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSED = "processed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderItemStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    RECEIVED = "received"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(BigId, primary_key=True, index=True)
    invoice = Column(String(64), unique=True, nullable=False, index=True)
    buyer = Column(String(255), nullable=False)
    contact = Column(String(255), nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    fees = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    amount = Column(Numeric(14, 2), nullable=False)
    coupon_code = Column(String(100), nullable=True)
    note = Column(Text, nullable=True)

    status = Column(
        Enum(TransactionStatus, name="transaction_status", values_callable=lambda e: [m.value for m in e]),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    ip_address = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
    activity_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "OrderItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(quantity > 0, name="check_transaction_quantity_positive"),
    )

    def __repr__(self):
        return f"<Transaction(id={self.id}, invoice='{self.invoice}', status='{self.status}')>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(BigId, primary_key=True, index=True)
    transaction_id = Column(BigId, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(BigId, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    # unit price at purchase time, after the variant's own discount
    price = Column(Numeric(14, 2), nullable=False)
    status = Column(
        Enum(OrderItemStatus, name="order_item_status", values_callable=lambda e: [m.value for m in e]),
        default=OrderItemStatus.PENDING,
        nullable=False,
    )
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    transaction = relationship("Transaction", back_populates="items", lazy="selectin")
    variant = relationship("ProductVariant", lazy="selectin")

    __table_args__ = (
        CheckConstraint(quantity > 0, name="check_order_item_quantity_positive"),
        Index("ix_order_items_transaction_user", "transaction_id", "user_id"),
    )
