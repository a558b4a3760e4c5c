
from dataclasses import dataclass
from typing import Optional
from .config import CR
from .catalog import Entry
from .utils import DriverLine, parse_optional_number, parse_override


@dataclass(frozen=True)
class LineEvaluation:
    effective_price: float
    effective_ef: float
    quantity: float
    delta_emissions: float  # tCO2, + = more than BAU
    cost_cr: float


def escalate(value: float, drift_pct: float, years_since_base: float) -> float:
    return value * (1.0 + parse_optional_number(drift_pct) / 100.0) ** years_since_base


def evaluate_line(line: DriverLine, entry: Optional[Entry], year_index: int,
                  years_since_base: float, adoption: float = 1.0) -> LineEvaluation:
    """Price, emission factor and impact of one driver line in one modelled year.

    A line whose catalog entry has disappeared evaluates against price and EF 0.
    An explicit per-year electricity EF is used as-is, without drift.
    """
    catalog_price = entry.price if entry is not None else 0.0
    catalog_ef = entry.ef if entry is not None else 0.0

    base_price = line.price_override if line.price_override is not None else catalog_price
    effective_price = escalate(base_price, line.price_drift_pct, years_since_base)

    per_year_ef = None
    if line.is_electricity and year_index < len(line.ef_override_per_year):
        per_year_ef = parse_override(line.ef_override_per_year[year_index])
    if per_year_ef is not None:
        effective_ef = per_year_ef
    else:
        base_ef = line.ef_override if line.ef_override is not None else catalog_ef
        effective_ef = escalate(base_ef, line.ef_drift_pct, years_since_base)

    delta = line.delta[year_index] if year_index < len(line.delta) else 0.0
    quantity = parse_optional_number(adoption) * parse_optional_number(delta)
    return LineEvaluation(
        effective_price=effective_price,
        effective_ef=effective_ef,
        quantity=quantity,
        delta_emissions=quantity * effective_ef,
        cost_cr=quantity * effective_price / CR,
    )
