"""
Country and currency lock for this deployment.

This instance serves Bangladesh only. Other countries launch as separate
instances, so every constant here is frozen.
"""

import math
from types import MappingProxyType

DEPLOYMENT_CONFIG = MappingProxyType({
    "COUNTRY_CODE": "BD",
    "COUNTRY_NAME": "Bangladesh",
    "IS_MULTI_COUNTRY": False,
    "CURRENCY_CODE": "BDT",
    "CURRENCY_SYMBOL": "৳",
    "CURRENCY_NAME": "Bangladeshi Taka",
    "SUPPORTED_LANGUAGES": ("en", "bn"),
    "DEFAULT_LANGUAGE": "en",
    "ALLOW_COUNTRY_SELECTION": False,
    "ALLOW_CURRENCY_CONVERSION": False,
    "SHOW_MULTI_COUNTRY_UI": False,
})

# Only a super admin could ever change these, and this deployment locks them.
COUNTRY_GOVERNANCE = MappingProxyType({
    "CAN_CHANGE_COUNTRY": False,
    "CAN_ENABLE_MULTI_COUNTRY": False,
    "CAN_CHANGE_CURRENCY": False,
    "REQUIRES_SUPER_ADMIN": True,
})

COUNTRY_CODE = DEPLOYMENT_CONFIG["COUNTRY_CODE"]
CURRENCY_CODE = DEPLOYMENT_CONFIG["CURRENCY_CODE"]
CURRENCY_SYMBOL = DEPLOYMENT_CONFIG["CURRENCY_SYMBOL"]

_BENGALI_DIGITS = str.maketrans("0123456789", "০১২৩৪৫৬৭৮৯")


def _group_lakh(integer_part: str) -> str:
    """Group digits the South Asian way: 12,34,567."""
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_bdt(amount: float) -> str:
    """Format an amount as taka with two decimals, e.g. ৳1,234.50"""
    return f"{CURRENCY_SYMBOL}{amount:,.2f}"


def format_currency(amount: float, locale: str = "en") -> str:
    """
    Format an amount for display in the given UI language.

    English uses western thousands grouping; Bengali uses lakh grouping and
    Bengali numerals.
    """
    if locale != "bn":
        return format_bdt(amount)

    sign = "-" if amount < 0 else ""
    integer_part, fraction = f"{abs(amount):.2f}".split(".")
    text = f"{sign}{_group_lakh(integer_part)}.{fraction}"
    return f"{CURRENCY_SYMBOL}{text.translate(_BENGALI_DIGITS)}"


def format_bdt_words(amount: float, compact: bool = False) -> str:
    """
    Human-readable lakh/crore amount, e.g. 15000000 -> "1 Crore 50 Lakhs BDT".
    """
    if amount == 0:
        return "0 BDT"
    if amount < 0:
        return "-" + format_bdt_words(abs(amount), compact)

    if amount >= 10_000_000:
        crores = math.floor(amount / 10_000_000)
        lakhs = math.floor((amount - crores * 10_000_000) / 100_000)
        if compact:
            suffix = f".{lakhs // 10}" if lakhs > 0 else ""
            return f"{crores}{suffix} Cr BDT"
        if lakhs > 0:
            return f"{crores} Crore {lakhs} {'Lakh' if lakhs == 1 else 'Lakhs'} BDT"
        return f"{crores} {'Crore' if crores == 1 else 'Crores'} BDT"

    if amount >= 100_000:
        lakhs = math.floor(amount / 100_000)
        thousands = math.floor((amount - lakhs * 100_000) / 1000)
        if compact:
            suffix = f".{thousands // 10}" if thousands > 0 else ""
            return f"{lakhs}{suffix} L BDT"
        label = "Lakh" if lakhs == 1 else "Lakhs"
        if thousands > 0:
            return f"{lakhs} {label} {thousands} Thousand BDT"
        return f"{lakhs} {label} BDT"

    if amount >= 1000:
        thousands = math.floor(amount / 1000)
        hundreds = math.floor((amount - thousands * 1000) / 100)
        if compact:
            suffix = f".{hundreds}" if hundreds > 0 else ""
            return f"{thousands}{suffix}K BDT"
        return f"{thousands} Thousand BDT"

    return f"{amount:.0f} BDT"


def parse_bdt(value: str) -> float:
    """Parse "৳1,234.50" back to 1234.5; anything unparseable is 0."""
    cleaned = (value or "").replace(CURRENCY_SYMBOL, "").replace(",", "").strip()
    try:
        parsed = float(cleaned)
    except ValueError:
        return 0.0
    return 0.0 if math.isnan(parsed) else parsed


def is_bdt(currency_code: str) -> bool:
    return currency_code == CURRENCY_CODE


def get_deployment_info() -> dict:
    """Deployment summary for the admin info page."""
    return {
        "country": DEPLOYMENT_CONFIG["COUNTRY_NAME"],
        "countryCode": DEPLOYMENT_CONFIG["COUNTRY_CODE"],
        "currency": DEPLOYMENT_CONFIG["CURRENCY_NAME"],
        "currencyCode": DEPLOYMENT_CONFIG["CURRENCY_CODE"],
        "currencySymbol": DEPLOYMENT_CONFIG["CURRENCY_SYMBOL"],
        "isMultiCountry": DEPLOYMENT_CONFIG["IS_MULTI_COUNTRY"],
        "supportedLanguages": list(DEPLOYMENT_CONFIG["SUPPORTED_LANGUAGES"]),
        "governance": dict(COUNTRY_GOVERNANCE),
    }
