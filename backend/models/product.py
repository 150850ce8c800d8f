# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, CheckConstraint
from database import Base

# Model Product
# Catalog entry listed by a farmer. The catalog is maintained by another
# service; checkout only reads it to resolve names, prices and farmers.
# owner_id is the legacy owner reference kept by older listings.
class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    category = Column(String, default="General")
    location = Column(String)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False, default=0)

    # Units available for sale
    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)

    image = Column(String, nullable=True)

    # Farmer identity denormalized onto the listing
    farmer_id = Column(String, index=True, nullable=True)
    farmer_email = Column(String, index=True, nullable=True)
    farmer_name = Column(String, nullable=True)
    owner_id = Column(String, nullable=True)
