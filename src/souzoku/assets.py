"""Asset and liability totals."""

import re
from typing import Any

from souzoku.models import ASSET_FIELDS, AssetData

MANEN = 10_000  # yen per 万円

POSITIVE_FIELDS = ("cash", "real_estate", "securities", "insurance", "other")
NEGATIVE_FIELDS = ("loans", "funeral_costs", "unpaid_taxes")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_amount(value: Any) -> int:
    """
    Parse a user-entered amount leniently.

    Leading integer digits are kept ("12.7" -> 12, "300万" -> 300), anything
    else becomes 0, and negative amounts are clamped to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        try:
            return max(0, int(value))
        except (OverflowError, ValueError):  # inf, nan
            return 0
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(0, int(match.group(1)))


def assets_from_dict(data: dict[str, Any] | None) -> AssetData:
    """Build AssetData from the camelCase boundary shape."""
    data = data or {}
    return AssetData(**{attr: parse_amount(data.get(key)) for attr, key in ASSET_FIELDS.items()})


def total_positive(assets: AssetData) -> int:
    return sum(getattr(assets, name) for name in POSITIVE_FIELDS)


def total_negative(assets: AssetData) -> int:
    return sum(getattr(assets, name) for name in NEGATIVE_FIELDS)


def net_assets(assets: AssetData) -> int:
    return total_positive(assets) - total_negative(assets)


def to_yen(manen: int) -> int:
    return manen * MANEN
