"""
Utility functions for the soil moisture alert service.
"""

import logging
import re

from soil_alert.errors import ValidationError

logger = logging.getLogger(__name__)


def phone_number_pattern(country_code: str = "+91") -> re.Pattern:
    """Optional country-code prefix followed by exactly 10 digits."""
    return re.compile(rf"^({re.escape(country_code)})?[0-9]{{10}}$")


def normalize_phone_number(phone_number: str, country_code: str = "+91") -> str:
    """
    Prefix the country code when absent and validate the result.

    Args:
        phone_number: Raw phone number as submitted by the client
        country_code: Prefix to prepend, e.g. "+91"

    Returns:
        Normalized phone number, e.g. "+919876543210"

    Raises:
        ValidationError: If the normalized number fails the pattern
    """
    normalized = phone_number.strip()
    if not normalized.startswith(country_code):
        normalized = f"{country_code}{normalized}"

    if not phone_number_pattern(country_code).match(normalized):
        logger.debug(f"Phone number rejected: {normalized}")
        raise ValidationError(
            f"phoneNumber must be 10 digits, optionally prefixed with {country_code}"
        )

    return normalized
