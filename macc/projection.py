
import logging
from dataclasses import dataclass, asdict, fields, replace
from typing import Dict, Any, Optional, Sequence
import pandas as pd
from .config import CR, YEARS, BASE_YEAR, FALLBACK_YEAR, DISCOUNT_RATE
from .catalog import Catalogs
from .drivers import evaluate_line
from .finance import annuity_factor, npv, discount_factors
from .utils import CATEGORIES, Measure, MeasureTemplate, parse_optional_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearBreakdown:
    """Abatement by driver category (+ = reduction) and the cost items of one year."""
    fuel_t: float
    raw_t: float
    transport_t: float
    waste_t: float
    electricity_t: float
    other_t: float
    delta_emissions_t: float
    driver_cr: float
    opex_cr: float
    other_cr: float
    savings_cr: float
    financed_annual_cr: float
    capex_upfront_cr: float


@dataclass(frozen=True)
class YearlyProjection:
    year: int
    direct_abatement: float  # tCO2, + = reduction vs BAU
    net_cost_cr: float
    cashflow_without_cp: float
    cashflow_with_cp: float
    implied_cost_without_cp: float
    implied_cost_with_cp: float
    breakdown: YearBreakdown

    @classmethod
    def zero(cls, year: int) -> 'YearlyProjection':
        return cls(year=year, direct_abatement=0.0, net_cost_cr=0.0, cashflow_without_cp=0.0,
                   cashflow_with_cp=0.0, implied_cost_without_cp=0.0, implied_cost_with_cp=0.0,
                   breakdown=YearBreakdown(*[0.0] * len(fields(YearBreakdown))))

    def to_record(self) -> Dict[str, Any]:
        rec = {k: v for k, v in asdict(self).items() if k != 'breakdown'}
        rec.update(asdict(self.breakdown))
        return rec


@dataclass(frozen=True)
class FinanceSummary:
    npv_without_cp: float
    npv_with_cp: float
    avg_cost_without_cp: float
    avg_cost_with_cp: float
    sum_direct: float


@dataclass(frozen=True)
class MeasureProjection:
    years: tuple
    base_year: int
    per_year: tuple
    auto_representative_index: int
    representative_index: int
    finance: FinanceSummary

    @property
    def representative(self) -> YearlyProjection:
        if not self.per_year:
            return YearlyProjection.zero(self.base_year)
        return self.per_year[self.representative_index]

    @property
    def representative_year(self) -> int:
        return self.representative.year

    def to_frame(self, discount_rate: float = None) -> pd.DataFrame:
        df = pd.DataFrame([y.to_record() for y in self.per_year])
        if discount_rate is not None and len(df):
            df['discount_factor'] = discount_factors(discount_rate, self.years, self.base_year)
        return df


def representative_index(per_year: Sequence[YearlyProjection], years: Sequence[int],
                         fallback_year: int = FALLBACK_YEAR) -> int:
    """First year that abates; otherwise the fallback anchor year, or the middle of the horizon."""
    for i, y in enumerate(per_year):
        if y.direct_abatement > 0:
            return i
    years = list(years)
    if fallback_year in years:
        return years.index(fallback_year)
    return len(years) // 2


def clamp_index(index: int, n: int) -> int:
    return max(0, min(n - 1, int(index)))


def _at(series, i: int) -> float:
    return parse_optional_number(series[i]) if i < len(series) else 0.0


def project_year(template: MeasureTemplate, catalogs: Catalogs, carbon_price: float,
                 i: int, year: int, base_year: int) -> YearlyProjection:
    a = max(0.0, min(1.0, _at(template.adoption, i)))
    years_since_base = max(0, year - base_year)

    # delta emissions vs BAU per category (+ = more)
    de = {c: 0.0 for c in CATEGORIES}
    driver_cr = 0.0
    for line in template.drivers.lines:
        entry = catalogs.lookup(line.category, line.catalog_key)
        ev = evaluate_line(line, entry, i, years_since_base, a)
        de[line.category] += ev.delta_emissions
        driver_cr += ev.cost_cr

    delta_e = sum(de.values())
    other_t = a * _at(template.other_reduction, i)
    direct = -delta_e + other_t

    s = template.stack
    opex = _at(s.opex_cr, i)
    savings = _at(s.savings_cr, i)
    other_cr = _at(s.other_cr, i)
    capex_upfront = _at(s.capex_upfront_cr, i)
    capex_financed = _at(s.capex_financed_cr, i)
    rate = _at(s.interest_rate_pct, i) / 100
    tenure = _at(s.financing_tenure_years, i)

    financed_annual = capex_financed * annuity_factor(rate, tenure) \
        if capex_financed > 0 and rate > 0 and tenure > 0 else 0.0

    # excludes upfront capex
    net_cost_cr = driver_cr + opex + other_cr - savings + financed_annual

    cf_wo = (savings - opex - driver_cr - other_cr - financed_annual - capex_upfront) * CR
    cp = parse_optional_number(carbon_price)
    cf_w = cf_wo + cp * direct

    implied_wo = net_cost_cr * CR / direct if direct > 0 else 0.0
    implied_w = (net_cost_cr * CR - cp * direct) / direct if direct > 0 else 0.0

    return YearlyProjection(
        year=year,
        direct_abatement=direct,
        net_cost_cr=net_cost_cr,
        cashflow_without_cp=cf_wo,
        cashflow_with_cp=cf_w,
        implied_cost_without_cp=implied_wo,
        implied_cost_with_cp=implied_w,
        breakdown=YearBreakdown(
            fuel_t=-de['fuel'], raw_t=-de['raw'], transport_t=-de['transport'],
            waste_t=-de['waste'], electricity_t=-de['electricity'], other_t=other_t,
            delta_emissions_t=delta_e, driver_cr=driver_cr, opex_cr=opex, other_cr=other_cr,
            savings_cr=savings, financed_annual_cr=financed_annual, capex_upfront_cr=capex_upfront,
        ),
    )


def project_measure(template: MeasureTemplate, catalogs: Catalogs, carbon_price: float = 0.0,
                    years: Sequence[int] = YEARS, base_year: int = BASE_YEAR,
                    representative: Optional[int] = None,
                    fallback_year: int = FALLBACK_YEAR) -> MeasureProjection:
    """Project a template measure over the modelled years.

    ``representative`` overrides the automatic representative year and is clamped
    into the horizon; when omitted the template's saved index is used if it has one.
    """
    years = tuple(int(y) for y in years)
    per_year = tuple(project_year(template, catalogs, carbon_price, i, y, base_year)
                     for i, y in enumerate(years))

    auto_idx = representative_index(per_year, years, fallback_year)
    chosen = representative if representative is not None else template.representative_index
    rep_idx = clamp_index(chosen, len(years)) if chosen is not None and years else auto_idx

    cp = parse_optional_number(carbon_price)
    # a zero or missing rate falls back to the default
    r = parse_optional_number(template.discount_rate) or DISCOUNT_RATE
    npv_wo = npv(r, [y.cashflow_without_cp for y in per_year], years, base_year)
    npv_w = npv(r, [y.cashflow_with_cp for y in per_year], years, base_year)

    sum_direct = sum(max(0.0, y.direct_abatement) for y in per_year)
    sum_cost_wo = sum(y.net_cost_cr * CR for y in per_year)
    sum_cost_w = sum(y.net_cost_cr * CR - cp * y.direct_abatement for y in per_year)

    return MeasureProjection(
        years=years,
        base_year=base_year,
        per_year=per_year,
        auto_representative_index=auto_idx,
        representative_index=rep_idx,
        finance=FinanceSummary(
            npv_without_cp=npv_wo,
            npv_with_cp=npv_w,
            avg_cost_without_cp=sum_cost_wo / sum_direct if sum_direct > 0 else 0.0,
            avg_cost_with_cp=sum_cost_w / sum_direct if sum_direct > 0 else 0.0,
            sum_direct=sum_direct,
        ),
    )


def measure_from_projection(measure_id: int, name: str, sector: str, template: MeasureTemplate,
                            projection: MeasureProjection, carbon_price: float,
                            include_carbon_price: bool = False) -> Measure:
    """Promote the representative year of a projection to a curve-facing Measure."""
    rep = projection.representative
    abatement = max(0.0, rep.direct_abatement)
    cost = rep.implied_cost_with_cp if include_carbon_price else rep.implied_cost_without_cp
    if abatement <= 0:
        logger.warning(f"Measure '{name}' has no abatement in {projection.representative_year}; "
                       "it will not appear on the MACC")
    saved = replace(template,
                    representative_index=projection.representative_index,
                    per_year=tuple(y.to_record() for y in projection.per_year))
    return Measure(
        id=measure_id,
        name=name,
        sector=sector,
        abatement_tco2=abatement,
        cost_per_tco2=cost,
        selected=True,
        saved_cost_includes_cp=bool(include_carbon_price),
        carbon_price_at_save=parse_optional_number(carbon_price),
        template=saved,
    )
