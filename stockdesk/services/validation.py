"""Field validators shared by the account, product and category services.

Each validator returns ``None`` when the value is acceptable, otherwise the message
for the first rule it breaks.
"""

import re

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_PRICE = 999_999_999
MAX_QUANTITY = 999_999


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_username(username: str | None) -> str | None:
    trimmed = (username or "").strip()
    if not trimmed:
        return "Username is required"
    if len(trimmed) < 3:
        return "Username must be at least 3 characters"
    if len(trimmed) > 50:
        return "Username must be less than 50 characters"
    if not USERNAME_RE.match(trimmed):
        return "Username can only contain letters, numbers, and underscores"
    return None


def validate_password(password: str | None) -> str | None:
    if not password:
        return "Password is required"
    if len(password) < 6:
        return "Password must be at least 6 characters"
    if len(password) > 255:
        return "Password is too long"
    return None


def validate_email(email: str | None) -> str | None:
    trimmed = (email or "").strip()
    if not trimmed:
        return "Email is required"
    if not EMAIL_RE.match(trimmed):
        return "Please enter a valid email address"
    return None


def validate_full_name(name: str | None) -> str | None:
    trimmed = (name or "").strip()
    if not trimmed:
        return "Full name is required"
    if len(trimmed) < 2:
        return "Full name must be at least 2 characters"
    if len(trimmed) > 255:
        return "Full name is too long"
    return None


def validate_product_name(name: str | None) -> str | None:
    trimmed = (name or "").strip()
    if not trimmed:
        return "Product name is required"
    if len(trimmed) < 3:
        return "Product name must be at least 3 characters"
    if len(trimmed) > 255:
        return "Product name is too long"
    return None


def validate_price(price: int | None) -> str | None:
    if price is None:
        return "Price is required"
    if not _is_int(price):
        return "Price must be a whole number"
    if price <= 0:
        return "Price must be greater than 0"
    if price > MAX_PRICE:
        return "Price is too high"
    return None


def validate_quantity(quantity: int | None) -> str | None:
    if quantity is None:
        return "Quantity is required"
    if not _is_int(quantity):
        return "Quantity must be a whole number"
    if quantity < 0:
        return "Quantity cannot be negative"
    if quantity > MAX_QUANTITY:
        return "Quantity is too high"
    return None


def validate_category_name(name: str | None) -> str | None:
    trimmed = (name or "").strip()
    if not trimmed:
        return "Category name is required"
    if len(trimmed) < 2:
        return "Category name must be at least 2 characters"
    if len(trimmed) > 100:
        return "Category name is too long"
    return None


def first_error(*errors: str | None) -> str | None:
    """Return the first non-empty message, preserving the order checks were listed in."""
    for error in errors:
        if error:
            return error
    return None
