from pydantic import BaseModel, ConfigDict
from typing import Optional


# Authenticated user as consumed by checkout: {id, name, email, role}
class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str = ""
    name: str = ""
    role: str = "buyer"

# Buyer context attached to farmer order items
class BuyerBrief(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
