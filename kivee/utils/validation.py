"""
Validation utilities
"""
import re
from decimal import Decimal, InvalidOperation

RECEIPT_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "application/pdf"})


def normalize_decimal_input(value: str) -> str:
    """
    Normalize an amount typed by staff: comma becomes a dot

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.strip().replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Validate a non-negative money amount

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "At most 2 decimal places")
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Invalid amount"

    if normalized.startswith("-"):
        return False, "Amount cannot be negative"

    pattern = rf"^\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"At most {max_decimal_places} decimal places"

    return True, None


def validate_and_normalize_amount(value: str, max_decimal_places: int = 2) -> str:
    """
    Validate and normalize an amount (raises on failure)

    Raises:
        ValueError: if validation fails
    """
    is_valid, error = validate_decimal_amount(value, max_decimal_places)
    if not is_valid:
        raise ValueError(error)

    return normalize_decimal_input(value)


def validate_receipt(content_type: str | None, size: int | None, max_bytes: int) -> str | None:
    """
    Check receipt metadata before it is attached to a payment.

    Returns an error message, or None when the receipt is acceptable.
    """
    if content_type not in RECEIPT_CONTENT_TYPES:
        return "Receipt must be an image or PDF."
    if size is not None and size > max_bytes:
        return f"Receipt must be smaller than {max_bytes // (1024 * 1024)}MB."
    return None
