from sqlalchemy import Boolean, Column, DateTime, String
from smartwork.core.database import Base


class User(Base):
    __tablename__ = "users"

    username = Column(String, primary_key=True)
    display_name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)

    # "Admin" | "Employee"
    role = Column(String, nullable=False, default="Employee")
    # "light" | "dark"
    theme = Column(String, nullable=False, default="light")

    password_hash = Column(String, nullable=True)
    # legacy plaintext, cleared on first successful login
    password = Column(String, nullable=True)
    password_set_at = Column(DateTime, nullable=True)
    force_password_change = Column(Boolean, nullable=False, default=True)
