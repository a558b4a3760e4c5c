
import math
from dataclasses import dataclass, replace
from typing import List, Dict, Any, Optional, Tuple, Iterable
from .config import YEARS, DISCOUNT_RATE, DEFAULT_TENURE_YEARS, DEFAULT_INTEREST_PCT

CATEGORIES = ('fuel', 'raw', 'transport', 'waste', 'electricity')

# keys used by saved measure details
LINE_RECORD_KEYS = {
    'fuel': 'fuel_lines',
    'raw': 'raw_lines',
    'transport': 'transport_lines',
    'waste': 'waste_lines',
    'electricity': 'electricity_lines',
}


def parse_optional_number(raw, default: float = 0.0) -> float:
    """Coerce a user-entered value to a finite float; blanks and garbage become ``default``."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def parse_override(raw) -> Optional[float]:
    """Like parse_optional_number but keeps "no value" as None."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def coerce_bool(raw, default: bool = True) -> bool:
    """Only False and the string "false" (any case) are false; blanks take the default."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() != 'false'


def number_series(values, n: int) -> Tuple[float, ...]:
    values = list(values) if isinstance(values, (list, tuple)) else []
    return tuple(parse_optional_number(values[i]) if i < len(values) else 0.0 for i in range(n))


def override_series(values, n: int) -> Tuple[Optional[float], ...]:
    values = list(values) if isinstance(values, (list, tuple)) else []
    return tuple(parse_override(values[i]) if i < len(values) else None for i in range(n))


def zeros(n: int) -> Tuple[float, ...]:
    return (0.0,) * n


def default_adoption(n: int) -> Tuple[float, ...]:
    """Linear 0 -> 1 ramp rounded to one decimal (0.0, 0.2, ..., 1.0)."""
    if n <= 1:
        return (1.0,) * n
    return tuple(round(i / (n - 1), 1) for i in range(n))


def interpolate_series(values: Iterable) -> List:
    """Fill blanks lying between two numeric entries by linear interpolation.

    Leading and trailing blanks are left as they are.
    """
    s = list(values)
    last_idx = None
    for i, val in enumerate(s):
        if parse_override(val) is None:
            continue
        if last_idx is None:
            last_idx = i
            continue
        start = float(s[last_idx])
        dv = (float(val) - start) / (i - last_idx)
        for k in range(last_idx + 1, i):
            s[k] = start + dv * (k - last_idx)
        last_idx = i
    return s


@dataclass(frozen=True)
class DriverLine:
    """One priced, carbon-factored usage change vs business-as-usual."""
    id: int
    category: str
    catalog_key: str
    delta: Tuple[float, ...]
    price_override: Optional[float] = None
    ef_override: Optional[float] = None
    ef_override_per_year: Tuple[Optional[float], ...] = ()  # electricity only
    price_drift_pct: float = 0.0
    ef_drift_pct: float = 0.0

    @property
    def is_electricity(self) -> bool:
        return self.category == 'electricity'

    def with_delta(self, index: int, value) -> 'DriverLine':
        delta = list(self.delta)
        delta[index] = parse_optional_number(value)
        return replace(self, delta=tuple(delta))

    def with_ef_override(self, index: int, value) -> 'DriverLine':
        ovs = list(self.ef_override_per_year) or [None] * len(self.delta)
        ovs[index] = parse_override(value)
        return replace(self, ef_override_per_year=tuple(ovs))

    def interpolated(self) -> 'DriverLine':
        return replace(self, delta=tuple(parse_optional_number(v) for v in interpolate_series(self.delta)))

    @classmethod
    def from_record(cls, record: Dict[str, Any], category: str, line_id: int, n_years: int) -> 'DriverLine':
        if category == 'electricity':
            key = record.get('state', '')
            delta = record.get('deltaMWh', record.get('delta'))
        else:
            key = record.get('name', '')
            delta = record.get('delta')
        return cls(
            id=line_id,
            category=category,
            catalog_key=str(key or ''),
            delta=number_series(delta, n_years),
            price_override=parse_override(record.get('priceOv')),
            ef_override=parse_override(record.get('efOv')),
            ef_override_per_year=override_series(record.get('efOvPerYear'), n_years) if category == 'electricity' else (),
            price_drift_pct=parse_optional_number(record.get('priceEscPctYr')),
            ef_drift_pct=parse_optional_number(record.get('efEscPctYr')),
        )

    def to_record(self) -> Dict[str, Any]:
        rec = {
            'id': self.id,
            'priceOv': self.price_override,
            'efOv': self.ef_override,
            'priceEscPctYr': self.price_drift_pct,
            'efEscPctYr': self.ef_drift_pct,
        }
        if self.is_electricity:
            rec['state'] = self.catalog_key
            rec['efOvPerYear'] = ['' if v is None else v for v in self.ef_override_per_year]
            rec['deltaMWh'] = list(self.delta)
        else:
            rec['name'] = self.catalog_key
            rec['delta'] = list(self.delta)
        return rec


@dataclass(frozen=True)
class DriverSet:
    """Ordered driver lines of a measure; edits return a new set."""
    lines: Tuple[DriverLine, ...] = ()

    def by_category(self, category: str) -> Tuple[DriverLine, ...]:
        return tuple(ln for ln in self.lines if ln.category == category)

    def add_line(self, category: str, catalog_key: str, n_years: int, **kwargs) -> 'DriverSet':
        if category not in CATEGORIES:
            raise ValueError(f"unknown driver category: {category}")
        next_id = max([0] + [ln.id for ln in self.lines]) + 1
        if category == 'electricity':
            kwargs.setdefault('ef_override_per_year', (None,) * n_years)
        delta = tuple(kwargs.pop('delta', zeros(n_years)))
        line = DriverLine(id=next_id, category=category, catalog_key=catalog_key, delta=delta, **kwargs)
        return replace(self, lines=self.lines + (line,))

    def remove_line(self, line_id: int) -> 'DriverSet':
        return replace(self, lines=tuple(ln for ln in self.lines if ln.id != line_id))

    def update_line(self, line_id: int, **changes) -> 'DriverSet':
        return replace(self, lines=tuple(replace(ln, **changes) if ln.id == line_id else ln for ln in self.lines))

    def replace_line(self, line: DriverLine) -> 'DriverSet':
        return replace(self, lines=tuple(line if ln.id == line.id else ln for ln in self.lines))

    @classmethod
    def from_record(cls, drivers: Dict[str, Any], n_years: int) -> 'DriverSet':
        lines = []
        next_id = 1
        for category in CATEGORIES:
            for rec in (drivers or {}).get(LINE_RECORD_KEYS[category]) or []:
                # ids in saved data are only unique per category
                lines.append(DriverLine.from_record(rec or {}, category, next_id, n_years))
                next_id += 1
        return cls(lines=tuple(lines))

    def to_record(self) -> Dict[str, List[Dict[str, Any]]]:
        return {LINE_RECORD_KEYS[c]: [ln.to_record() for ln in self.by_category(c)] for c in CATEGORIES}


STACK_FIELDS = (
    'opex_cr', 'savings_cr', 'other_cr', 'capex_upfront_cr', 'capex_financed_cr',
    'financing_tenure_years', 'interest_rate_pct',
)


@dataclass(frozen=True)
class FinancialStack:
    """Per-year cost/saving/financing series, all in crore except tenure (years) and rate (%)."""
    opex_cr: Tuple[float, ...]
    savings_cr: Tuple[float, ...]
    other_cr: Tuple[float, ...]
    capex_upfront_cr: Tuple[float, ...]
    capex_financed_cr: Tuple[float, ...]
    financing_tenure_years: Tuple[float, ...]
    interest_rate_pct: Tuple[float, ...]

    @classmethod
    def default(cls, n_years: int, tenure_years: float = DEFAULT_TENURE_YEARS,
                interest_pct: float = DEFAULT_INTEREST_PCT) -> 'FinancialStack':
        return cls(
            opex_cr=zeros(n_years), savings_cr=zeros(n_years), other_cr=zeros(n_years),
            capex_upfront_cr=zeros(n_years), capex_financed_cr=zeros(n_years),
            financing_tenure_years=(float(tenure_years),) * n_years,
            interest_rate_pct=(float(interest_pct),) * n_years,
        )

    def with_value(self, name: str, index: int, value) -> 'FinancialStack':
        values = list(getattr(self, name))
        values[index] = parse_optional_number(value)
        return replace(self, **{name: tuple(values)})

    @classmethod
    def from_record(cls, record: Dict[str, Any], n_years: int) -> 'FinancialStack':
        record = record or {}
        return cls(**{name: number_series(record.get(name), n_years) for name in STACK_FIELDS})

    def to_record(self) -> Dict[str, List[float]]:
        return {name: list(getattr(self, name)) for name in STACK_FIELDS}


@dataclass(frozen=True)
class MeasureTemplate:
    """Full driver/adoption/financial inputs of a projected measure."""
    drivers: DriverSet
    adoption: Tuple[float, ...]
    other_reduction: Tuple[float, ...]
    stack: FinancialStack
    discount_rate: float = DISCOUNT_RATE
    representative_index: Optional[int] = None
    per_year: Tuple[Dict[str, Any], ...] = ()  # projection captured at save time

    @classmethod
    def new(cls, n_years: int = len(YEARS), **kwargs) -> 'MeasureTemplate':
        kwargs.setdefault('drivers', DriverSet())
        kwargs.setdefault('adoption', default_adoption(n_years))
        kwargs.setdefault('other_reduction', zeros(n_years))
        kwargs.setdefault('stack', FinancialStack.default(n_years))
        return cls(**kwargs)

    @classmethod
    def from_record(cls, details: Dict[str, Any], n_years: int) -> 'MeasureTemplate':
        drivers = details.get('drivers') or {}
        meta = details.get('meta') or {}
        rep = details.get('representative_index')
        return cls(
            drivers=DriverSet.from_record(drivers, n_years),
            adoption=number_series(details.get('adoption'), n_years),
            other_reduction=number_series(drivers.get('other_direct_t'), n_years),
            stack=FinancialStack.from_record(details.get('stack'), n_years),
            discount_rate=parse_optional_number(meta.get('discount_rate')) or DISCOUNT_RATE,
            representative_index=int(parse_optional_number(rep)) if parse_override(rep) is not None else None,
            per_year=tuple(details.get('per_year') or ()),
        )


@dataclass(frozen=True)
class Measure:
    id: int
    name: str
    sector: str
    abatement_tco2: float = 0.0
    cost_per_tco2: float = 0.0
    selected: bool = True
    color_hex: Optional[str] = None
    color: Optional[str] = None  # legacy colour field
    saved_cost_includes_cp: bool = False
    carbon_price_at_save: float = 0.0
    template: Optional[MeasureTemplate] = None

    @property
    def is_quick(self) -> bool:
        return self.template is None


@dataclass(frozen=True)
class Baseline:
    production_label: str = 'units'
    annual_production: float = 0.0
    annual_emissions: float = 0.0

    @property
    def intensity(self) -> float:
        return self.annual_emissions / self.annual_production if self.annual_production > 0 else 0.0

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Baseline':
        record = record or {}
        return cls(
            production_label=str(record.get('production_label') or 'units'),
            annual_production=parse_optional_number(record.get('annual_production')),
            annual_emissions=parse_optional_number(record.get('annual_emissions')),
        )


def measure_from_record(record: Dict[str, Any], position: int = 0, n_years: int = len(YEARS)) -> Measure:
    """Build a Measure from a loosely-typed record (CSV row or saved JSON)."""
    details = record.get('details') if isinstance(record.get('details'), dict) else {}
    template = None
    if details.get('mode') == 'template_db_multiline':
        template = MeasureTemplate.from_record(details, n_years)
    raw_id = parse_override(record.get('id'))
    return Measure(
        id=int(raw_id) if raw_id else position + 1,
        name=str(record.get('name') or ''),
        sector=str(record.get('sector') or ''),
        abatement_tco2=parse_optional_number(record.get('abatement_tco2')),
        cost_per_tco2=parse_optional_number(record.get('cost_per_tco2')),
        selected=coerce_bool(record.get('selected'), True),
        color_hex=record.get('color_hex') or details.get('color_hex') or None,
        color=record.get('color') or None,
        saved_cost_includes_cp=coerce_bool(details.get('saved_cost_includes_carbon_price'), False),
        carbon_price_at_save=parse_optional_number(details.get('carbon_price_at_save')),
        template=template,
    )


def normalize_measures(records: Iterable[Dict[str, Any]], n_years: int = len(YEARS)) -> List[Measure]:
    return [measure_from_record(r or {}, i, n_years) for i, r in enumerate(records or [])]


def next_measure_id(measures: Iterable[Measure]) -> int:
    return max([0] + [m.id for m in measures]) + 1


def baselines_from_records(records: Dict[str, Any]) -> Dict[str, Baseline]:
    return {str(k): Baseline.from_record(v) for k, v in (records or {}).items()}
