import pytest

from macc.catalog import Catalogs, CatalogEntry, ElectricityEntry
from macc.utils import Measure, Baseline


@pytest.fixture
def catalogs():
    return Catalogs(
        fuel=(CatalogEntry('Coal', 't', 9000.0, 2.42), CatalogEntry('Biomass', 't', 4000.0, 0.0)),
        raw=(CatalogEntry('Limestone', 't', 800.0, 0.44),),
        transport=(CatalogEntry('Diesel truck', 't-km', 3.5, 0.0001),),
        waste=(CatalogEntry('Landfill', 't', 1500.0, 0.5),),
        electricity=(ElectricityEntry('India', 6500.0, 0.71),),
    )


@pytest.fixture
def two_measures():
    """A(100,000 t at 500) and B(50,000 t at -200)."""
    return [
        Measure(id=1, name='A', sector='Cement', abatement_tco2=100_000, cost_per_tco2=500),
        Measure(id=2, name='B', sector='Cement', abatement_tco2=50_000, cost_per_tco2=-200),
    ]


@pytest.fixture
def baselines():
    return {
        'Cement': Baseline('t clinker', 2_000_000, 1_000_000),
        'Steel': Baseline('t steel', 500_000, 250_000),
        'Firm – Plant 1': Baseline('t', 10, 999_999),
    }
