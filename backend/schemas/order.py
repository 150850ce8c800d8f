from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from schemas.product import ProductBrief
from schemas.user import BuyerBrief


# Line of an order submission; price is captured verbatim
class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int
    price_at_purchase: float
    farmer_id: str = ""


# Order creation payload, one per farmer group of an invoice
class OrderCreate(BaseModel):
    buyer_id: str
    invoice_no: Optional[str] = None
    farmer_key: Optional[str] = None
    items: List[OrderItemCreate]


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    product_id: str
    farmer_id: str = ""
    quantity: int
    price_at_purchase: float


# Output schema representing the full order
class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    buyer_id: str
    order_date: Optional[datetime] = None
    order_status: str
    total_amount: float
    invoice_no: Optional[str] = None
    order_items: List[OrderItemOut] = Field(default_factory=list)


# Order header attached to a farmer's order item
class OrderBrief(BaseModel):
    id: int
    order_status: str
    order_date: Optional[datetime] = None
    buyer: Optional[BuyerBrief] = None


# A farmer's own line within a possibly multi-farmer order
class FarmerOrderItem(BaseModel):
    id: int
    order_id: int
    product_id: str
    farmer_id: str = ""
    quantity: int
    price_at_purchase: float
    order: OrderBrief
    product: Optional[ProductBrief] = None


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: str


# Display rows derived for dashboards
class OrderLineSummary(BaseModel):
    product_id: str
    quantity: int
    price_at_purchase: float
    subtotal: float


class OrderSummary(BaseModel):
    order_id: int
    status: str
    granularity: str  # "order" for single item orders, "items" otherwise
    total_amount: float
    lines: List[OrderLineSummary] = Field(default_factory=list)
