import enum

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle states of an order
class OrderStatus(str, enum.Enum):
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    buyer_id = Column(String, index=True, nullable=False)
    order_date = Column(DateTime(timezone=True), server_default=func.now())
    order_status = Column(String, nullable=False, default=OrderStatus.PLACED.value)
    total_amount = Column(Float, nullable=False)

    # Idempotency key of a checkout submission: one order per invoice and farmer
    invoice_no = Column(String, index=True, nullable=True)
    farmer_key = Column(String, nullable=True)

    order_items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("buyer_id", "invoice_no", "farmer_key", name="uq_order_invoice_farmer"),
    )

class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    farmer_id = Column(String, index=True, nullable=False, default="")
    quantity = Column(Integer, nullable=False)

    # Price captured when the order was placed; never refreshed from the catalog
    price_at_purchase = Column(Float, nullable=False)

    order = relationship("Order", back_populates="order_items")
    product = relationship("Product")
