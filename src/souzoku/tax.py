"""Basic deduction and inheritance tax estimate (yen)."""

from souzoku.heirs import classify_heirs
from souzoku.models import FamilyData, FamilyGraph, TaxCalculation

BASIC_DEDUCTION_BASE = 30_000_000
BASIC_DEDUCTION_PER_HEIR = 6_000_000
LIFE_INSURANCE_EXEMPTION_PER_HEIR = 5_000_000

# (upper bound inclusive, rate percent, quick deduction); None is unbounded.
# Quick-reference table applied to the whole taxable amount, not per heir.
TAX_BRACKETS = [
    (10_000_000, 10, 0),
    (30_000_000, 15, 500_000),
    (50_000_000, 20, 2_000_000),
    (None, 30, 7_000_000),
]


def count_statutory_heirs(source: FamilyData | FamilyGraph, decedent_id: str | None = None) -> int:
    """Number of statutory heirs counted for the basic deduction."""
    return classify_heirs(source, decedent_id).heir_count


def basic_deduction(heir_count: int) -> int:
    return BASIC_DEDUCTION_BASE + BASIC_DEDUCTION_PER_HEIR * max(0, heir_count)


def life_insurance_exemption(heir_count: int) -> int:
    """Non-taxable life insurance proceeds (500万円 per statutory heir)."""
    return LIFE_INSURANCE_EXEMPTION_PER_HEIR * max(0, heir_count)


def taxable_assets(total_assets: int, total_liabilities: int, heir_count: int) -> int:
    return max(0, total_assets - total_liabilities - basic_deduction(heir_count))


def estimate_tax(taxable: int) -> int:
    """
    Tax on the whole taxable amount using the quick-reference brackets.

    Integer arithmetic, truncated to whole yen and floored at 0.
    """
    if taxable <= 0:
        return 0
    for ceiling, rate, quick in TAX_BRACKETS:
        if ceiling is None or taxable <= ceiling:
            return max(0, taxable * rate // 100 - quick)
    return 0


def calculate_tax(total_assets: int, total_liabilities: int, heir_count: int) -> TaxCalculation:
    """
    Estimate the inheritance tax on an estate.

    Args:
        total_assets: Gross estate in yen
        total_liabilities: Debts and funeral costs in yen
        heir_count: Statutory heirs counted for the deduction

    Returns:
        The deduction, taxable base and estimated tax
    """
    taxable = taxable_assets(total_assets, total_liabilities, heir_count)
    return TaxCalculation(
        basic_deduction=basic_deduction(heir_count),
        taxable_assets=taxable,
        estimated_tax=estimate_tax(taxable),
        heir_count=heir_count,
    )
