"""
SQLAlchemy models for users and their transactions.
Every transaction row carries the owning user_id; all queries filter on it.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import (
    Column,
    String,
    DateTime,
    Numeric,
    Text,
    ForeignKey,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship

from fintrack.database import Base

TRANSACTION_TYPES = ("income", "expense")

CATEGORIES = (
    "Housing",
    "Utilities",
    "Food",
    "Transport",
    "Insurance",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Education",
    "Salary",
    "Freelance",
    "Investment",
    "Other",
)

# Advisory pairing of categories to transaction types, checked at the API boundary
CATEGORIES_BY_TYPE = {
    "income": ("Salary", "Freelance", "Investment", "Other"),
    "expense": (
        "Housing",
        "Utilities",
        "Food",
        "Transport",
        "Insurance",
        "Healthcare",
        "Entertainment",
        "Shopping",
        "Education",
        "Other",
    ),
}

PAYMENT_METHODS = (
    "Credit Card",
    "Debit Card",
    "Cash",
    "Bank Transfer",
    "Digital Wallet",
)

DATE_FORMATS = ("MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD")
THEMES = ("light", "dark")

DEFAULT_MONTHLY_BUDGET = Decimal("5000")

# Precision and scale of every money column
MONEY_DIGITS = 15
MONEY_PLACES = 2


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """
    Registered user. Passwords are stored as bcrypt hashes only.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    password_hash = Column(String(128), nullable=False)
    monthly_budget = Column(Numeric(MONEY_DIGITS, MONEY_PLACES), default=DEFAULT_MONTHLY_BUDGET)
    currency = Column(String(3), default="USD")
    date_format = Column(String(10), default="MM/DD/YYYY")
    theme = Column(String(10), default="light")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_users_email", "email"),
    )


class Transaction(Base):
    """
    A single income or expense event.
    `date` is when the money moved; created_at/updated_at are bookkeeping.
    """
    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(10), nullable=False)  # income, expense
    amount = Column(Numeric(MONEY_DIGITS, MONEY_PLACES), nullable=False)
    description = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)
    payment_method = Column(String(50), nullable=False)
    date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="transactions")

    # Indexes mirror the two hot query shapes: by date, and by type then date
    __table_args__ = (
        Index("idx_transactions_user_date", "user_id", "date"),
        Index("idx_transactions_user_type_date", "user_id", "type", "date"),
    )
