# Read-only lookups against the product catalog and the user directory
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.product import Product
from models.users import User
from schemas.product import ProductRecord
from schemas.user import UserRecord
from services.normalize import normalize_product, normalize_user

logger = logging.getLogger(__name__)


class ProductCatalog:
    def __init__(self, db: Session):
        self.db = db

    def get_product_by_id(self, product_id) -> Optional[ProductRecord]:
        if product_id in (None, ""):
            return None
        product = self.db.query(Product).filter(Product.id == str(product_id)).first()
        return normalize_product(product)

    def get_products_by_farmer(self, farmer_id) -> List[ProductRecord]:
        ref = str(farmer_id)
        rows = self.db.query(Product).filter(
            or_(Product.farmer_id == ref, Product.farmer_email == ref, Product.owner_id == ref)
        ).all()
        return [normalize_product(p) for p in rows]


class UserDirectory:
    def __init__(self, db: Session):
        self.db = db

    def find(self, ref) -> Optional[UserRecord]:
        """Look a user up by numeric id or by email."""
        if ref in (None, ""):
            return None
        ref = str(ref)
        query = self.db.query(User)
        if ref.isdigit():
            user = query.filter(or_(User.id == int(ref), User.email == ref)).first()
        else:
            user = query.filter(User.email == ref).first()
        return normalize_user(user)
