"""
Form validation for inventory items.

Checks raw text typed into the add/edit form before anything is sent to the
store.
"""
from typing import Optional, Tuple

from .errors import ValidationError


def validate_name(value: Optional[str]) -> Tuple[bool, str]:
    if not value:
        return False, "Enter item name"
    return True, ""


def validate_category(value: Optional[str]) -> Tuple[bool, str]:
    if not value:
        return False, "Enter category"
    return True, ""


def parse_quantity(value: Optional[str]) -> Tuple[Optional[int], str]:
    """
    Parse the quantity field.

    Returns:
        Tuple of (quantity or None, error_message)
    """
    try:
        quantity = int((value or "").strip())
    except ValueError:
        return None, "Enter valid quantity"
    if quantity < 0:
        return None, "Quantity cannot be negative"
    return quantity, ""


def parse_price(value: Optional[str]) -> Tuple[Optional[float], str]:
    """
    Parse the price field.

    Returns:
        Tuple of (price or None, error_message)
    """
    try:
        price = float((value or "").strip())
    except ValueError:
        return None, "Enter valid price"
    # float() accepts "nan" and "inf"
    if price != price or price in (float("inf"), float("-inf")):
        return None, "Enter valid price"
    if price < 0:
        return None, "Price cannot be negative"
    return price, ""


def parse_item_form(name: Optional[str], quantity: Optional[str], price: Optional[str], category: Optional[str]) -> dict:
    """
    Validate and convert the add/edit form fields.

    Args:
        name: Item name as typed
        quantity: Quantity as typed
        price: Price as typed
        category: Category as typed

    Returns:
        dict with name, quantity (int), price (float) and category

    Raises:
        ValidationError: With one message per invalid field
    """
    errors = {}

    is_valid, message = validate_name(name)
    if not is_valid:
        errors["name"] = message

    parsed_quantity, message = parse_quantity(quantity)
    if parsed_quantity is None:
        errors["quantity"] = message

    parsed_price, message = parse_price(price)
    if parsed_price is None:
        errors["price"] = message

    is_valid, message = validate_category(category)
    if not is_valid:
        errors["category"] = message

    if errors:
        raise ValidationError(errors)

    return {
        "name": name,
        "quantity": parsed_quantity,
        "price": parsed_price,
        "category": category,
    }
