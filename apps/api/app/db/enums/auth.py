"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Account roles.

    - CUSTOMER: submits investigation requests
    - INVESTIGATOR: vetted professional, must be approved before matching
    - ADMIN: moderates accounts and requests
    """

    CUSTOMER = "customer"
    INVESTIGATOR = "investigator"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
