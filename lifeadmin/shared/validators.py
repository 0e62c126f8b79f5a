"""Contact field validation for notification delivery"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$")
NON_DIGITS = re.compile(r"\D")


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to E.164.

    A leading ``+`` means the country code is already present and 8 to 15
    digits are accepted. Anything else is read as a US number: 10 digits, or
    11 starting with 1.

    Raises:
        ValueError: when the number cannot be normalized
    """
    if not phone:
        return phone

    digits = NON_DIGITS.sub("", phone)

    if phone.strip().startswith("+"):
        if not 8 <= len(digits) <= 15:
            raise ValueError(f"International number needs 8 to 15 digits, got {len(digits)}")
        return f"+{digits}"

    if len(digits) == 11 and digits[0] == "1":
        digits = digits[1:]
    if len(digits) != 10:
        raise ValueError(f"US number needs 10 digits, got {len(digits)}")
    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """Lowercased, trimmed address; raises ValueError when it does not look like one"""
    if not email:
        return email

    normalized = email.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError(f"Invalid email address: {email!r}")
    return normalized
