# backend/models/cart.py
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint, CheckConstraint, func
from database import Base

# A single {product, quantity} pair in a user's cart.
# Only the reference is stored; names, prices and images are looked up on read.
class CartLineRow(Base):
    __tablename__ = "cart_lines"

    id = Column(Integer, primary_key=True, index=True)
    user_key = Column(String, index=True, nullable=False) # Owner of the cart
    product_id = Column(String, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0) # Insertion order
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # One line per product in a cart
        UniqueConstraint("user_key", "product_id", name="uq_cartline_user_product"),
    )
