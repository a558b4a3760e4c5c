
import math
import logging
from enum import Enum
from dataclasses import dataclass
from typing import List, Dict, Optional, Sequence, Tuple
import numpy as np
import pandas as pd
from .config import PALETTE, ALL_SECTORS, FIRM_SECTOR_PREFIX
from .fit import QuadraticFit, PiecewiseFit, quadratic_fit, piecewise_linear_fit
from .utils import Measure, Baseline, parse_optional_number

logger = logging.getLogger(__name__)

CAPACITY = 'capacity'
INTENSITY = 'intensity'


@dataclass(frozen=True)
class CostedMeasure:
    measure: Measure
    effective_cost: float

    @property
    def abatement(self) -> float:
        return self.measure.abatement_tco2


@dataclass(frozen=True)
class Segment:
    id: int
    name: str
    sector: str
    x1: float
    x2: float
    cost: float
    abatement: float
    color: str
    color_hex: Optional[str] = None


@dataclass(frozen=True)
class CurvePoint:
    id: int
    name: str
    sector: str
    abatement: float
    cost: float
    cum_abatement: float
    x: float


class CurveModel(str, Enum):
    STEP = 'step'
    QUADRATIC = 'quadratic'
    PIECEWISE = 'piecewise'


def effective_cost(measure: Measure, carbon_price: float) -> float:
    """Saved cost shifted by the carbon price; only the change since saving if the cost already nets it out."""
    base = float(measure.cost_per_tco2)
    cp_now = parse_optional_number(carbon_price)
    if measure.saved_cost_includes_cp:
        return base - (cp_now - float(measure.carbon_price_at_save))
    return base - cp_now


def is_firm_sector(label) -> bool:
    return isinstance(label, str) and label.startswith(FIRM_SECTOR_PREFIX)


def sector_baseline(baselines: Dict[str, Baseline], sector: str) -> Baseline:
    """Baseline of one sector, or the sum over non-firm sectors for "All sectors"."""
    if sector == ALL_SECTORS:
        entries = [(k, b) for k, b in (baselines or {}).items() if not is_firm_sector(k)]
        label = entries[0][1].production_label if entries else 'units'
        return Baseline(
            production_label=label,
            annual_production=sum(b.annual_production for _, b in entries),
            annual_emissions=sum(b.annual_emissions for _, b in entries),
        )
    return (baselines or {}).get(sector) or Baseline('units', 1.0, 1.0)


def active_measures(measures: Sequence[Measure], sector: str = ALL_SECTORS) -> List[Measure]:
    return [m for m in measures if m.selected and (sector == ALL_SECTORS or m.sector == sector)]


def sort_by_effective_cost(measures: Sequence[Measure], carbon_price: float) -> List[CostedMeasure]:
    costed = [CostedMeasure(m, effective_cost(m, carbon_price)) for m in measures]
    # sorted() is stable, equal costs keep input order
    return sorted(costed, key=lambda cm: cm.effective_cost)


def to_plot_units(value: float, axis_mode: str, baseline_emissions: float) -> float:
    if axis_mode == CAPACITY:
        return value
    return value / baseline_emissions * 100 if baseline_emissions > 0 else 0.0


def segment_color(measure: Measure, position: int, palette: Sequence[str] = PALETTE) -> str:
    return measure.color_hex or measure.color or palette[position % len(palette)]


def build_segments(sorted_measures: Sequence[CostedMeasure], axis_mode: str = CAPACITY,
                   baseline_emissions: float = 0.0,
                   palette: Sequence[str] = PALETTE) -> Tuple[List[Segment], float]:
    """Cumulative step segments, one per measure with positive finite abatement.

    Returns the segments and the total curve width in plot units.
    """
    cum = 0.0
    segs = []
    for idx, cm in enumerate(sorted_measures):
        a, c = cm.abatement, cm.effective_cost
        if not (math.isfinite(a) and math.isfinite(c)) or a <= 0:
            logger.debug(f"Skipping measure {cm.measure.id}: abatement={a}, cost={c}")
            continue
        x1, x2 = cum, cum + a
        cum = x2
        segs.append(Segment(
            id=cm.measure.id,
            name=cm.measure.name,
            sector=cm.measure.sector,
            x1=to_plot_units(x1, axis_mode, baseline_emissions),
            x2=to_plot_units(x2, axis_mode, baseline_emissions),
            cost=c,
            abatement=a,
            color=segment_color(cm.measure, idx, palette),
            color_hex=cm.measure.color_hex,
        ))
    total = segs[-1].x2 if segs else 0.0
    return segs, total


def curve_points(sorted_measures: Sequence[CostedMeasure], axis_mode: str = CAPACITY,
                 baseline_emissions: float = 0.0) -> List[CurvePoint]:
    """One (x, cost) point per measure at its upper cumulative bound."""
    cum = 0.0
    points = []
    for cm in sorted_measures:
        a = cm.abatement
        cum += max(0.0, a)
        points.append(CurvePoint(
            id=cm.measure.id, name=cm.measure.name, sector=cm.measure.sector,
            abatement=a, cost=cm.effective_cost, cum_abatement=cum,
            x=to_plot_units(cum, axis_mode, baseline_emissions),
        ))
    return points


@dataclass(frozen=True)
class QuadraticCurve:
    fit: QuadraticFit
    fitted: Tuple[Tuple[float, float], ...]

    @property
    def r2(self) -> Optional[float]:
        return self.fit.r2


def fit_quadratic(points: Sequence[CurvePoint], positive_costs_only: bool = False) -> Optional[QuadraticCurve]:
    data = [p for p in points if p.cost >= 0] if positive_costs_only else list(points)
    fit = quadratic_fit([p.x for p in data], [p.cost for p in data])
    if fit is None:
        logger.debug(f"Quadratic fit unavailable for {len(data)} points")
        return None
    return QuadraticCurve(fit=fit, fitted=tuple((p.x, fit.predict(p.x)) for p in points))


def fit_piecewise(points: Sequence[CurvePoint]) -> Optional[PiecewiseFit]:
    if len(points) < 4:
        return None
    try:
        result = piecewise_linear_fit([(p.x, p.cost) for p in points])
    except (ValueError, np.linalg.LinAlgError) as e:
        logger.error(f"Piecewise fit failed: {e}")
        return None
    return result if result is not None and result.usable else None


def resolve_curve_model(current, quadratic: Optional[QuadraticCurve],
                        piecewise: Optional[PiecewiseFit]) -> CurveModel:
    """Fall back to the step curve when the selected model has no fit."""
    model = CurveModel(current)
    if model is CurveModel.QUADRATIC and quadratic is None:
        return CurveModel.STEP
    if model is CurveModel.PIECEWISE and piecewise is None:
        return CurveModel.STEP
    return model


def y_domain(segments: Sequence[Segment]) -> Tuple[float, float]:
    if not segments:
        return 0.0, 1.0
    ys = [s.cost for s in segments]
    lo, hi = min([0.0] + ys), max([0.0] + ys)
    pad = max(1.0, (hi - lo) * 0.1)
    return lo - pad, hi + pad


def axis_width(total: float, axis_mode: str) -> float:
    if axis_mode == CAPACITY:
        return total if total > 0 else 1.0
    return max(100.0, total or 1.0)


def target_x(target_pct: float, axis_mode: str, baseline_emissions: float) -> float:
    t = parse_optional_number(target_pct)
    if axis_mode == CAPACITY:
        return baseline_emissions * t / 100 if baseline_emissions > 0 else 0.0
    return t


@dataclass(frozen=True)
class MACCurve:
    baseline: Baseline
    axis_mode: str
    sorted_measures: Tuple[CostedMeasure, ...]
    segments: Tuple[Segment, ...]
    total: float
    points: Tuple[CurvePoint, ...]
    quadratic: Optional[QuadraticCurve]
    piecewise: Optional[PiecewiseFit]
    model: CurveModel

    @property
    def y_domain(self) -> Tuple[float, float]:
        return y_domain(self.segments)

    @property
    def width(self) -> float:
        return axis_width(self.total, self.axis_mode)

    def segments_frame(self) -> pd.DataFrame:
        cols = ['id', 'name', 'sector', 'x1', 'x2', 'cost', 'abatement', 'color']
        return pd.DataFrame([{c: getattr(s, c) for c in cols} for s in self.segments], columns=cols)


def build_curve(measures: Sequence[Measure], baselines: Dict[str, Baseline], sector: str = ALL_SECTORS,
                carbon_price: float = 0.0, axis_mode: str = CAPACITY, model=CurveModel.STEP,
                fit_positive_costs_only: bool = False, palette: Sequence[str] = PALETTE) -> MACCurve:
    """Filter, sort and lay out the measures of one sector as a MACC, with optional fits."""
    baseline = sector_baseline(baselines, sector)
    emissions = baseline.annual_emissions
    ordered = sort_by_effective_cost(active_measures(measures, sector), carbon_price)
    segs, total = build_segments(ordered, axis_mode, emissions, palette)
    points = curve_points(ordered, axis_mode, emissions)
    quad = fit_quadratic(points, fit_positive_costs_only)
    pw = fit_piecewise(points)
    return MACCurve(
        baseline=baseline,
        axis_mode=axis_mode,
        sorted_measures=tuple(ordered),
        segments=tuple(segs),
        total=total,
        points=tuple(points),
        quadratic=quad,
        piecewise=pw,
        model=resolve_curve_model(model, quad, pw),
    )
