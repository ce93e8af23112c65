"""
Row schemas for CSV bulk import.

Column names follow the published CSV templates (camelCase headers), so the
fields carry aliases. Every rule raises a PydanticCustomError whose message is
shown to the user verbatim; the first failing rule of a row is the one reported.
"""
import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from models.user import Role

CODE_RE = re.compile(r"^[A-Za-z0-9_-]+$")
USERNAME_RE = re.compile(r"^[a-z0-9_]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _rule(message: str) -> PydanticCustomError:
    return PydanticCustomError("import_rule", message)


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _required(value, field: str, max_length: int | None = None) -> str:
    text = _text(value)
    if not text:
        raise _rule(f"{field} is required")
    if max_length is not None and len(text) > max_length:
        raise _rule(f"{field} must be at most {max_length} characters")
    return text


def _optional(value, field: str, max_length: int) -> Optional[str]:
    text = _text(value)
    if len(text) > max_length:
        raise _rule(f"{field} must be at most {max_length} characters")
    return text or None


def _email(value) -> str:
    text = _required(value, "email", 255)
    try:
        validate_email(text, check_deliverability=False)
    except EmailNotValidError:
        raise _rule("Invalid email address")
    return text


def first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid row"
    return str(errors[0]["msg"])


class ImportRow(BaseModel):
    # Missing columns still go through the field rules
    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_default=True)


class CustomerImportRow(ImportRow):
    name: str = ""
    code: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_name: Optional[str] = Field(None, alias="contactName")

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "name", 200)

    @field_validator("code", mode="before")
    @classmethod
    def check_code(cls, v):
        code = _required(v, "code", 20)
        if len(code) < 2:
            raise _rule("code must be at least 2 characters")
        if not CODE_RE.match(code):
            raise _rule("code can only contain letters, numbers, hyphens, and underscores")
        return code

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _email(v) if _text(v) else None

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v):
        return _optional(v, "phone", 30)

    @field_validator("contact_name", mode="before")
    @classmethod
    def check_contact_name(cls, v):
        return _optional(v, "contactName", 100)


class ProductImportRow(ImportRow):
    sku: str = ""
    name: str = ""
    customer_code: str = Field("", alias="customerCode")
    barcode: Optional[str] = None
    description: Optional[str] = None
    # Parsed by the business rules, not here
    unit_value: Optional[str] = Field(None, alias="unitValue")

    @field_validator("sku", mode="before")
    @classmethod
    def check_sku(cls, v):
        return _required(v, "sku", 100)

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "name", 200)

    @field_validator("customer_code", mode="before")
    @classmethod
    def check_customer_code(cls, v):
        return _required(v, "customerCode", 20)

    @field_validator("barcode", mode="before")
    @classmethod
    def check_barcode(cls, v):
        return _optional(v, "barcode", 100)

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v):
        return _optional(v, "description", 1000)

    @field_validator("unit_value", mode="before")
    @classmethod
    def check_unit_value(cls, v):
        return _text(v) or None


class UserImportRow(ImportRow):
    email: str = ""
    username: str = ""
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    password: str = ""
    role: Optional[Role] = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _email(v).lower()

    @field_validator("username", mode="before")
    @classmethod
    def check_username(cls, v):
        username = _required(v, "username", 50).lower()
        if len(username) < 3:
            raise _rule("username must be at least 3 characters")
        if not USERNAME_RE.match(username):
            raise _rule("username can only contain letters, numbers, and underscores")
        return username

    @field_validator("first_name", mode="before")
    @classmethod
    def check_first_name(cls, v):
        return _required(v, "firstName", 100)

    @field_validator("last_name", mode="before")
    @classmethod
    def check_last_name(cls, v):
        return _required(v, "lastName", 100)

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, v):
        # Passwords are not stripped
        password = "" if v is None else str(v)
        if len(password) < 8:
            raise _rule("password must be at least 8 characters")
        if not PASSWORD_RE.match(password):
            raise _rule("password must contain at least one uppercase letter, one lowercase letter, and one number")
        return password

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        text = _text(v).upper()
        if not text:
            return None
        if text not in {role.value for role in Role}:
            raise _rule(f"role must be one of {', '.join(role.value for role in Role)}")
        return text


class WarehouseLocationImportRow(ImportRow):
    code: str = ""
    zone: Optional[str] = None
    aisle: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")

    @field_validator("code", mode="before")
    @classmethod
    def check_code(cls, v):
        return _required(v, "code", 50)

    @field_validator("zone", "aisle", "rack", "shelf", mode="before")
    @classmethod
    def check_slot(cls, v, info):
        return _optional(v, info.field_name, 100)

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v):
        return _optional(v, "description", 500)

    @field_validator("is_active", mode="before")
    @classmethod
    def check_is_active(cls, v):
        if isinstance(v, bool):
            return v
        return _text(v).lower() != "false"
