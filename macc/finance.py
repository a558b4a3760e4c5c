
import math
from typing import List, Sequence
import numpy_financial as npf
from .utils import parse_optional_number


def annuity_factor(rate: float, periods: float) -> float:
    """Level payment per unit of principal: r(1+r)^n / ((1+r)^n - 1)."""
    try:
        r, n = float(rate), float(periods)
    except (TypeError, ValueError):
        return 0.0
    if not (math.isfinite(r) and math.isfinite(n)) or n <= 0:
        return 0.0
    if abs(r) < 1e-9:
        return 1.0 / n
    # pmt is signed from the borrower's side
    return float(-npf.pmt(r, n, 1.0))


def npv(rate: float, cash_flows: Sequence[float], years: Sequence[int], base_year: int) -> float:
    """Discount each flow by the years elapsed since base_year; years need not be contiguous."""
    r = parse_optional_number(rate)
    total = 0.0
    for cf, year in zip(cash_flows, years):
        t = max(0, year - base_year)
        discount = 1.0 if t == 0 else 1 / (1 + r) ** t
        total += parse_optional_number(cf) * discount
    return total


def discount_factors(rate: float, years: Sequence[int], base_year: int) -> List[float]:
    r = parse_optional_number(rate)
    return [(1 / (1 + r)) ** max(0, y - base_year) for y in years]
