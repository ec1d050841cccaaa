# src/virtkube/utils/k8s_utils.py

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

_BINARY_SUFFIXES = {
    "Ki": Decimal(1024),
    "Mi": Decimal(1024) ** 2,
    "Gi": Decimal(1024) ** 3,
    "Ti": Decimal(1024) ** 4,
    "Pi": Decimal(1024) ** 5,
    "Ei": Decimal(1024) ** 6,
}

_DECIMAL_SUFFIXES = {
    "n": Decimal("0.000000001"),
    "u": Decimal("0.000001"),
    "m": Decimal("0.001"),
    "": Decimal(1),
    "k": Decimal(1000),
    "M": Decimal(1000) ** 2,
    "G": Decimal(1000) ** 3,
    "T": Decimal(1000) ** 4,
    "P": Decimal(1000) ** 5,
    "E": Decimal(1000) ** 6,
}

_QUANTITY_RE = re.compile(r"^([+-]?[0-9.]+(?:[eE][+-]?[0-9]+)?)([a-zA-Z]{0,2})$")


def parse_quantity(quantity: Union[str, int, float, Decimal]) -> Decimal:
    """
    Parse a Kubernetes quantity ('500m', '4Gi', '1.5') to Decimal.

    Raises:
        ValueError: If the quantity is empty or malformed.
    """
    if isinstance(quantity, (int, float, Decimal)):
        return Decimal(quantity)
    if quantity is None:
        raise ValueError("quantity must not be empty")

    text = str(quantity).strip()
    match = _QUANTITY_RE.match(text)
    if not match:
        raise ValueError(f"quantity {quantity!r} is not a valid Kubernetes quantity")

    number, suffix = match.group(1), match.group(2)
    try:
        value = Decimal(number)
    except InvalidOperation:
        raise ValueError(f"quantity {quantity!r} is not a valid Kubernetes quantity") from None

    if suffix in _BINARY_SUFFIXES:
        return value * _BINARY_SUFFIXES[suffix]
    if suffix in _DECIMAL_SUFFIXES:
        return value * _DECIMAL_SUFFIXES[suffix]
    raise ValueError(f"quantity {quantity!r} has an unknown suffix {suffix!r}")


def is_valid_quantity(quantity: Optional[str]) -> bool:
    try:
        parse_quantity(quantity)
    except ValueError:
        return False
    return True
