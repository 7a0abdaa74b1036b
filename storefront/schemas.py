"""
Request and response schemas.

Update models have every field optional; the services turn whichever fields
were supplied into column changes.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator, model_validator

from storefront.checkout import PaymentMethod

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
ProductName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]
ProductDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]
CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
CategoryDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]
Price = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]

PHONE_RE = re.compile(r"^[+]?[\d\s\-()]{10,}$")


# Users

class RegisterRequest(BaseModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: NonBlank
    last_name: NonBlank
    phone: Optional[str] = None
    address: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    first_name: NonBlank
    last_name: NonBlank
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value):
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not PHONE_RE.match(value):
            raise ValueError("Please enter a valid phone number")
        return value


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class RoleUpdate(BaseModel):
    role: Literal["customer", "admin"]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


# Catalog

class CategoryCreate(BaseModel):
    name: CategoryName
    description: Optional[CategoryDescription] = None


class CategoryUpdate(BaseModel):
    name: Optional[CategoryName] = None
    description: Optional[CategoryDescription] = None


class ProductCreate(BaseModel):
    name: ProductName
    description: Optional[ProductDescription] = None
    price: Price
    stock_quantity: int = Field(0, ge=0)
    category_id: int = Field(..., ge=1)
    image_url: Optional[str] = Field(None, max_length=500)


class ProductUpdate(BaseModel):
    name: Optional[ProductName] = None
    description: Optional[ProductDescription] = None
    price: Optional[Price] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = Field(None, ge=1)
    image_url: Optional[str] = Field(None, max_length=500)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_quantity: int
    image_url: Optional[str] = None
    category_id: int
    category_name: Optional[str] = None
    created_at: Optional[datetime] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


# Cart

class CartAdd(BaseModel):
    product_id: Optional[int] = Field(None, validation_alias=AliasChoices("product_id", "productId"))
    quantity: int = Field(1, ge=1)


class CartUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


# Checkout

class ShippingDetails(BaseModel):
    first_name: NonBlank
    last_name: NonBlank
    email: EmailStr
    address: NonBlank
    city: NonBlank
    state: NonBlank
    zip_code: NonBlank
    phone: Optional[str] = None


class CardDetails(BaseModel):
    card_number: str
    expiry_date: Annotated[str, StringConstraints(pattern=r"^(0[1-9]|1[0-2])/\d{2}$")]
    cvv: Annotated[str, StringConstraints(pattern=r"^\d{3,4}$")]
    name_on_card: NonBlank

    @field_validator("card_number")
    @classmethod
    def check_card_number(cls, value):
        digits = re.sub(r"[\s-]", "", value)
        if not re.fullmatch(r"\d{13,19}", digits):
            raise ValueError("Card number must contain 13 to 19 digits")
        return digits


class CheckoutRequest(BaseModel):
    shipping: ShippingDetails
    payment_method: PaymentMethod = PaymentMethod.CARD
    card: Optional[CardDetails] = None

    @model_validator(mode="after")
    def check_card_present(self):
        if self.payment_method == PaymentMethod.CARD and self.card is None:
            raise ValueError("Card details are required for card payments")
        return self
