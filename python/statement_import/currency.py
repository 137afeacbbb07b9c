"""
Currency Module

Money in minor units and currency-aware conversion from major units.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
DEFAULT_DECIMAL_DIGITS = 2

# ISO 4217 minor unit exponents (only currencies that differ from 2 need
# listing, the rest are kept so that is_known_currency can validate codes)
CURRENCY_DECIMALS: dict[str, int] = {
    # Zero decimals
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "UYI": 0, "VND": 0, "VUV": 0,
    "XAF": 0, "XOF": 0, "XPF": 0,
    # Three decimals
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
    # Four decimals
    "CLF": 4, "UYW": 4,
    # Crypto
    "BTC": 8,
    # Two decimals
    "AED": 2, "ARS": 2, "AUD": 2, "BDT": 2, "BGN": 2, "BRL": 2, "CAD": 2,
    "CHF": 2, "CNY": 2, "COP": 2, "CZK": 2, "DKK": 2, "EGP": 2, "EUR": 2,
    "GBP": 2, "HKD": 2, "HUF": 2, "IDR": 2, "ILS": 2, "INR": 2, "KES": 2,
    "MAD": 2, "MXN": 2, "MYR": 2, "NGN": 2, "NOK": 2, "NZD": 2, "PEN": 2,
    "PHP": 2, "PKR": 2, "PLN": 2, "QAR": 2, "RON": 2, "RSD": 2, "RUB": 2,
    "SAR": 2, "SEK": 2, "SGD": 2, "THB": 2, "TRY": 2, "TWD": 2, "UAH": 2,
    "USD": 2, "ZAR": 2,
}


@dataclass(frozen=True)
class Money:
    """An integer amount in minor units tagged with its currency."""

    amount: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"Money amount must be an integer, got {self.amount!r}")
        object.__setattr__(self, "currency", normalize_currency_code(self.currency))

    @classmethod
    def from_major(cls, value: float | Decimal | str, currency: str = DEFAULT_CURRENCY) -> "Money":
        """Build Money from a major-unit value (e.g. dollars)."""
        return cls(to_minor_units(value, currency), currency)

    def to_major(self) -> Decimal:
        """Return the amount in major units as an exact Decimal."""
        return Decimal(self.amount).scaleb(-get_decimal_digits(self.currency))

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __str__(self) -> str:
        return f"{self.to_major()} {self.currency}"


def normalize_currency_code(code: str | None) -> str:
    """Upper-case and trim a currency code, falling back to USD when blank."""
    if not code or not code.strip():
        return DEFAULT_CURRENCY
    return code.strip().upper()


def is_known_currency(code: str) -> bool:
    return normalize_currency_code(code) in CURRENCY_DECIMALS


def get_decimal_digits(currency_code: str) -> int:
    """Get the number of minor-unit decimal places for a currency.

    Unknown codes fall back to 2 decimal places.

    Args:
        currency_code: ISO 4217 code (case-insensitive)

    Returns:
        Decimal places (0 for JPY, 2 for USD, 3 for BHD, ...)
    """
    code = normalize_currency_code(currency_code)
    digits = CURRENCY_DECIMALS.get(code)
    if digits is None:
        logger.warning(f"Unknown currency {code}, assuming {DEFAULT_DECIMAL_DIGITS} decimal places")
        return DEFAULT_DECIMAL_DIGITS
    return digits


def get_minor_unit_multiplier(currency_code: str) -> int:
    """Multiplier from major to minor units (USD=100, JPY=1, BHD=1000)."""
    return 10 ** get_decimal_digits(currency_code)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_minor_units(value: float | Decimal | str, currency_code: str) -> int:
    """Convert a major-unit amount to minor units for a specific currency.

    Floats are converted through their shortest decimal representation so
    that 1.005 is treated as the decimal the user typed, not as the nearest
    binary double.

    Args:
        value: Amount in major units
        currency_code: ISO 4217 currency code

    Returns:
        Integer amount in minor units

    Raises:
        ValueError: If value is not a finite number
    """
    try:
        decimal_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot convert amount: {value!r}")

    if not decimal_value.is_finite():
        raise ValueError(f"Cannot convert non-finite amount: {value!r}")

    return round_half_up(decimal_value.scaleb(get_decimal_digits(currency_code)))


def to_major_units(amount: int, currency_code: str) -> Decimal:
    """Convert minor units back to an exact major-unit Decimal."""
    return Decimal(amount).scaleb(-get_decimal_digits(currency_code))
