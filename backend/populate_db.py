import os
import sys
import logging

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from sqlalchemy.orm import Session

from models.users import User
from models.product import Product
from database import SessionLocal, init_db
from utils.tokenJWT import create_access_token

logger = logging.getLogger(__name__)

# Configuration
DEMO_USERS = [
    {"email": "admin@agriconnect.test", "name": "Admin", "role": "admin"},
    {"email": "buyer@agriconnect.test", "name": "Asha Buyer", "role": "buyer"},
    {"email": "ravi@farm.test", "name": "Ravi Farmer", "role": "farmer"},
    {"email": "meena@farm.test", "name": "Meena Farmer", "role": "farmer"},
    {"email": "old@farm.test", "name": "Legacy Farmer", "role": "farmer"},
]

# (id, name, category, price, quantity, farmer email)
DEMO_PRODUCTS = [
    ("p1", "Basmati Rice 5kg", "Grains", 100.0, 40, "ravi@farm.test"),
    ("p2", "Organic Tomatoes 1kg", "Vegetables", 50.0, 120, "meena@farm.test"),
    ("p3", "Alphonso Mangoes (dozen)", "Fruits", 650.0, 15, "ravi@farm.test"),
    ("p4", "Turmeric Powder 500g", "Spices", 180.0, 60, "meena@farm.test"),
]

# Older listings only carry the owner's user id
LEGACY_PRODUCTS = [
    ("p5", "Desi Ghee 1L", "Dairy", 720.0, 10, "old@farm.test"),
]
# End Configuration


def _upsert_user(session: Session, data: dict) -> User:
    user = session.query(User).filter(User.email == data["email"]).first()
    if user is None:
        user = User(**data)
        session.add(user)
        session.flush()
    return user


def seed_demo_data(session: Session) -> dict:
    """Inserts demo users and products; running it twice changes nothing."""
    users = {data["email"]: _upsert_user(session, data) for data in DEMO_USERS}

    for pid, name, category, price, qty, email in DEMO_PRODUCTS:
        if session.get(Product, pid):
            continue
        farmer = users[email]
        session.add(Product(
            id=pid, name=name, category=category, price=price, quantity=qty,
            description=f"Category: {category}.", location="Pune",
            image=f"https://picsum.photos/seed/{pid}/300/300",
            farmer_id=str(farmer.id), farmer_email=farmer.email, farmer_name=farmer.name,
        ))

    for pid, name, category, price, qty, email in LEGACY_PRODUCTS:
        if session.get(Product, pid):
            continue
        session.add(Product(
            id=pid, name=name, category=category, price=price, quantity=qty,
            description=f"Category: {category}.", owner_id=str(users[email].id),
        ))

    session.commit()
    logger.info("Seeded %s users and %s products", len(users), len(DEMO_PRODUCTS) + len(LEGACY_PRODUCTS))
    return users


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    session = SessionLocal()
    try:
        users = seed_demo_data(session)
        # Tokens for trying the API by hand
        for email, user in users.items():
            print(f"{user.role:<7} {email}: {create_access_token({'sub': email})}")
    finally:
        session.close()
