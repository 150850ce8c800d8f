# backend/models/checkout.py
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, UniqueConstraint, func
from database import Base

# Kind of invoice document kept between requests
class SessionKind(str, enum.Enum):
    PENDING = "pending"  # billing in progress, survives reloads
    RECEIPT = "receipt"  # last completed invoice

# Invoice snapshot persisted per user so checkout can resume after a reload
class CheckoutSession(Base):
    __tablename__ = "checkout_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_key = Column(String, index=True, nullable=False)
    kind = Column(Enum(SessionKind), nullable=False)
    invoice_no = Column(String, nullable=True)
    payload = Column(Text, nullable=False) # Serialized invoice JSON
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_key", "kind", name="uq_checkout_session_user_kind"),
    )
