from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Literal, Optional
from uuid import UUID

from fintrack.models import (
    CATEGORIES,
    CATEGORIES_BY_TYPE,
    DATE_FORMATS,
    MONEY_DIGITS,
    MONEY_PLACES,
    PAYMENT_METHODS,
    THEMES,
    TRANSACTION_TYPES,
)

TransactionType = Literal[TRANSACTION_TYPES]
CategoryName = Literal[CATEGORIES]
PaymentMethod = Literal[PAYMENT_METHODS]
DateFormat = Literal[DATE_FORMATS]
Theme = Literal[THEMES]


def category_allowed(transaction_type: str, category: str) -> bool:
    return category in CATEGORIES_BY_TYPE.get(transaction_type, ())


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    """Accepts and emits the camelCase field names the dashboard client uses."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Transaction Schemas
class TransactionCreate(CamelModel):
    type: TransactionType
    amount: Decimal = Field(..., ge=Decimal("0.01"), max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    description: str = Field(..., min_length=1, max_length=255)
    category: CategoryName
    payment_method: PaymentMethod
    date: datetime
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("description", mode="before")
    @classmethod
    def _strip_description(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)

    @model_validator(mode="after")
    def _check_category_for_type(self) -> "TransactionCreate":
        if not category_allowed(self.type, self.category):
            raise ValueError(f"Category '{self.category}' is not valid for {self.type} transactions")
        return self


class TransactionUpdate(CamelModel):
    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(
        None, ge=Decimal("0.01"), max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[CategoryName] = None
    payment_method: Optional[PaymentMethod] = None
    date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("description", mode="before")
    @classmethod
    def _strip_description(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)

    @model_validator(mode="after")
    def _reject_nulls(self) -> "TransactionUpdate":
        for name in self.model_fields_set:
            if name != "notes" and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TransactionResponse(CamelModel):
    id: UUID
    user_id: UUID
    type: str
    amount: float
    description: str
    category: str
    payment_method: str
    date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TransactionImportRequest(BaseModel):
    """Raw items are validated one by one so a bad row does not sink the batch."""
    transactions: List[Any]


# Auth Schemas
class RegisterRequest(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _strip_names(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="after")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


# User Schemas
class UserResponse(CamelModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    monthly_budget: float
    currency: str
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    monthly_budget: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _strip_names(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class BudgetUpdate(CamelModel):
    monthly_budget: Decimal = Field(..., ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class AccountDelete(CamelModel):
    password: str = Field(..., min_length=1)


class PreferencesUpdate(CamelModel):
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")
    date_format: Optional[DateFormat] = None
    theme: Optional[Theme] = None


def transaction_to_dict(transaction) -> dict:
    return TransactionResponse.model_validate(transaction).model_dump(by_alias=True, mode="json")


def user_to_dict(user) -> dict:
    return UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")
