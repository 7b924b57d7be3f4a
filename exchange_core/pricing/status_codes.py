"""
Status codes for conversion outcomes.

Separates a legitimate zero amount from the different ways a conversion
can fail to find a price.
"""

from enum import Enum


class ConversionStatus(str, Enum):
    """
    Outcome of a single conversion.

    Values:
        OK: Converted through a direct or bridged path.
        IDENTITY: Source and target are the same currency.
        ZERO_AMOUNT: Amount was zero; nothing to convert.
        UNRESOLVED_CURRENCY: Source or target id is unknown to the store.
        NO_BRIDGE: No direct rate and no eligible bridge currency.
        BRIDGE_LEG_FAILED: A bridge was found but one of its legs had no rate.
    """
    OK = "OK"
    IDENTITY = "IDENTITY"
    ZERO_AMOUNT = "ZERO_AMOUNT"
    UNRESOLVED_CURRENCY = "UNRESOLVED_CURRENCY"
    NO_BRIDGE = "NO_BRIDGE"
    BRIDGE_LEG_FAILED = "BRIDGE_LEG_FAILED"


class ConversionPath(str, Enum):
    """Route a conversion took through the rate table."""
    NONE = "NONE"
    IDENTITY = "IDENTITY"
    DIRECT = "DIRECT"
    BRIDGED = "BRIDGED"


SUCCESS_STATUSES = frozenset({
    ConversionStatus.OK,
    ConversionStatus.IDENTITY,
    ConversionStatus.ZERO_AMOUNT,
})


STATUS_DESCRIPTIONS = {
    ConversionStatus.OK: "Amount converted.",
    ConversionStatus.IDENTITY: "Source and target currency are the same.",
    ConversionStatus.ZERO_AMOUNT: "Amount is zero.",
    ConversionStatus.UNRESOLVED_CURRENCY: "Currency not found.",
    ConversionStatus.NO_BRIDGE: "No direct rate and no bridge currency available.",
    ConversionStatus.BRIDGE_LEG_FAILED: "A leg of the bridged conversion has no rate.",
}


def get_status_description(status: ConversionStatus) -> str:
    """
    Get a human-readable description for a status.

    Args:
        status: The conversion status.

    Returns:
        str: Status description.
    """
    return STATUS_DESCRIPTIONS.get(status, "Unknown status.")
