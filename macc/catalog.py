
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Union
from .utils import CATEGORIES, parse_optional_number

DEFAULT_GRID_EF = 0.710  # tCO2/MWh


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    unit: str = ''
    price_per_unit: float = 0.0
    ef_per_unit: float = 0.0

    @property
    def key(self) -> str:
        return self.name

    @property
    def price(self) -> float:
        return self.price_per_unit

    @property
    def ef(self) -> float:
        return self.ef_per_unit


@dataclass(frozen=True)
class ElectricityEntry:
    state: str
    price_per_mwh: float = 0.0
    ef_per_mwh: float = DEFAULT_GRID_EF

    @property
    def key(self) -> str:
        return self.state

    @property
    def price(self) -> float:
        return self.price_per_mwh

    @property
    def ef(self) -> float:
        return self.ef_per_mwh


Entry = Union[CatalogEntry, ElectricityEntry]


def _first(row: Dict[str, Any], keys, default=None):
    for k in keys:
        if row.get(k) is not None:
            return row[k]
    return default


def normalize_catalog_row(row: Dict[str, Any]) -> CatalogEntry:
    """Normalize a fuel/raw/transport/waste row, accepting the legacy column aliases."""
    return CatalogEntry(
        name=str(_first(row, ('name', 'fuel', 'material', 'transport', 'item'), '')),
        unit=str(row.get('unit') or ''),
        price_per_unit=parse_optional_number(_first(row, ('price_per_unit_inr', 'price_per_unit', 'price'))),
        ef_per_unit=parse_optional_number(_first(row, ('ef_tco2_per_unit', 'ef_t_per_unit', 'ef_t'))),
    )


def normalize_electricity_row(row: Dict[str, Any]) -> ElectricityEntry:
    return ElectricityEntry(
        state=str(_first(row, ('state', 'region', 'grid'), '')),
        price_per_mwh=parse_optional_number(_first(row, ('price_per_mwh_inr', 'price_per_mwh', 'price'))),
        ef_per_mwh=parse_optional_number(_first(row, ('ef_tco2_per_mwh', 'ef_t_per_mwh', 'ef_t')), DEFAULT_GRID_EF),
    )


def normalize_rows(category: str, rows) -> List[Entry]:
    norm = normalize_electricity_row if category == 'electricity' else normalize_catalog_row
    return [norm(r or {}) for r in (rows or [])]


@dataclass(frozen=True)
class Catalogs:
    """Reference prices and emission factors per driver category."""
    fuel: tuple = ()
    raw: tuple = ()
    transport: tuple = ()
    waste: tuple = ()
    electricity: tuple = ()

    def entries(self, category: str) -> tuple:
        return getattr(self, category)

    def lookup(self, category: str, key: str) -> Optional[Entry]:
        for entry in self.entries(category):
            if entry.key == key:
                return entry
        return None

    @classmethod
    def from_records(cls, records: Dict[str, Any]) -> 'Catalogs':
        records = records or {}
        # saved firm data uses the plural "fuels"
        return cls(**{
            c: tuple(normalize_rows(c, records.get(c) if c in records else records.get(c + 's')))
            for c in CATEGORIES
        })


def _merged(sample: tuple, custom: tuple) -> tuple:
    by_key = {}
    for entry in list(sample) + list(custom):
        if entry.key:
            by_key[str(entry.key).lower()] = entry
    return tuple(by_key.values())


def resolve_catalogs(sample: Catalogs, custom: Catalogs, mode: str = 'merged') -> Catalogs:
    """Pick the catalog set the projector sees: 'sample', 'custom' or 'merged' (custom wins)."""
    if mode == 'sample':
        return sample
    if mode == 'custom':
        return custom
    return Catalogs(**{c: _merged(sample.entries(c), custom.entries(c)) for c in CATEGORIES})
