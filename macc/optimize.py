
import math
from dataclasses import dataclass
from typing import Sequence
from .curve import CostedMeasure, CAPACITY, to_plot_units
from .utils import parse_optional_number


@dataclass(frozen=True)
class TargetResult:
    target_abatement: float  # tCO2
    abated: float  # tCO2 actually allocated
    reached: float  # in axis units
    budget: float


def solve_target(sorted_measures: Sequence[CostedMeasure], target_pct: float,
                 baseline_emissions: float, axis_mode: str = CAPACITY) -> TargetResult:
    """Walk the cost-sorted measures, cheapest first, until the target share of baseline emissions is abated.

    The budget is sum(taken * effective cost); this is a greedy walk, not a search over combinations.
    """
    emissions = parse_optional_number(baseline_emissions)
    target = emissions * parse_optional_number(target_pct) / 100
    if not sorted_measures:
        return TargetResult(target_abatement=target, abated=0.0, reached=0.0, budget=0.0)

    cum, budget, reached = 0.0, 0.0, 0.0
    for cm in sorted_measures:
        if not (math.isfinite(cm.abatement) and math.isfinite(cm.effective_cost)):
            continue
        remaining = max(0.0, target - cum)
        take = min(remaining, cm.abatement)
        if take > 0:
            budget += take * cm.effective_cost
            cum += take
            reached = to_plot_units(cum, axis_mode, emissions)

    max_possible = to_plot_units(cum, axis_mode, emissions)
    return TargetResult(target_abatement=target, abated=cum, reached=min(reached, max_possible), budget=budget)
