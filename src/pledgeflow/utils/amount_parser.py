"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse a donation amount string into a Decimal.

    Handles various formats:
    - "500"
    - "500.00"
    - "₹500"
    - "Rs. 1,500.50"
    - "$1,234.56"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount rounded to cents

    Raises:
        ValueError: If amount string cannot be parsed or is not positive
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = amount_str.strip()

    # Remove currency symbols and prefixes
    cleaned = re.sub(r"^(rs\.?|inr)\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"[₹$€£¥]", "", cleaned)

    # Remove thousands separators
    cleaned = cleaned.replace(",", "").strip()

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Amount must be positive: '{amount_str}'")
    return amount.quantize(Decimal("0.01"))
