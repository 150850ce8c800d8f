from pydantic import BaseModel, Field
from typing import List, Optional

# Stored cart entry: product reference and quantity only
class CartLine(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: Optional[str] = None
    quantity: float = 1

# Request schema for updating cart item quantity; values <= 0 remove the line
class CartUpdateItem(BaseModel):
    quantity: float

# Cart line joined with the catalog snapshot
class ResolvedCartItem(BaseModel):
    product_id: str
    name: str
    price: float
    quantity: int
    farmer_id: str = ""
    farmer_email: str = ""
    farmer_name: str = ""
    image: Optional[str] = None

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[ResolvedCartItem]
    total: float
    total_display: str
