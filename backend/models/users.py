# backend/models/users.py
from sqlalchemy import Column, Integer, String
from database import Base

# Represents an authenticated marketplace user (buyer, farmer or admin).
# Accounts are issued elsewhere; this table is the local user directory.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="buyer")
