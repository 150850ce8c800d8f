# backend/schemas/product.py
from pydantic import BaseModel, ConfigDict
from typing import Optional


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Canonical catalog record consumed by checkout
class ProductRecord(ORMBase):
    id: str
    name: str = ""
    price: float = 0.0
    quantity: int = 0
    category: Optional[str] = None
    location: Optional[str] = None
    image: Optional[str] = None
    farmer_id: str = ""
    farmer_email: str = ""
    farmer_name: str = ""
    owner_id: str = ""


# Minimal product context attached to farmer order items
class ProductBrief(ORMBase):
    id: str
    name: str = "Unknown Product"
