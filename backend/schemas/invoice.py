# schemas/invoice.py
from pydantic import BaseModel, Field
from typing import List, Optional


# Priced invoice line; subtotal = price * quantity
class InvoiceLine(BaseModel):
    product_id: Optional[str] = None
    name: str = "Item"
    price: float = 0.0
    quantity: int = 1
    subtotal: float = 0.0
    farmer_id: str = ""
    farmer_email: str = ""
    farmer_name: str = ""
    product_image: Optional[str] = None


# Client-computed summary of the cart before payment
class Invoice(BaseModel):
    invoice_no: str
    date: str
    items: List[InvoiceLine] = Field(default_factory=list)
    total_amount: float = 0.0
    buyer_id: Optional[str] = None
    buyer_name: Optional[str] = None
    created_at: Optional[str] = None

    # Stamped once payment succeeds
    paid_at: Optional[str] = None
    order_id: Optional[int] = None
    order_ids: List[int] = Field(default_factory=list)


# Invoice enriched with display strings for the billing view
class InvoiceView(BaseModel):
    invoice: Invoice
    date_display: str
    total_display: str
    paid_at_display: Optional[str] = None


# Input schema for the single product "buy now" flow
class BuyNowRequest(BaseModel):
    product_id: str
    quantity: float = 1


# Input schema for payment submission; defaults to the pending invoice
class PaymentRequest(BaseModel):
    invoice_no: Optional[str] = None
