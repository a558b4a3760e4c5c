import pytest

from macc.catalog import CatalogEntry, ElectricityEntry
from macc.drivers import evaluate_line
from macc.utils import DriverLine

COAL = CatalogEntry('Coal', 't', 9000.0, 2.42)
GRID = ElectricityEntry('India', 6500.0, 0.71)


def fuel_line(**kw):
    kw.setdefault('delta', (-100.0,) * 6)
    return DriverLine(id=1, category='fuel', catalog_key='Coal', **kw)


class TestDriverLineEvaluator:
    def test_no_overrides_no_drift_matches_catalog_every_year(self):
        line = fuel_line()
        for i, since in enumerate([0, 5, 10, 15, 20, 25]):
            ev = evaluate_line(line, COAL, i, since)
            assert ev.effective_price == COAL.price_per_unit
            assert ev.effective_ef == COAL.ef_per_unit

    def test_compound_drift(self):
        line = fuel_line(price_drift_pct=10, ef_drift_pct=-10)
        ev = evaluate_line(line, COAL, 1, 2)
        assert ev.effective_price == pytest.approx(9000 * 1.21)
        assert ev.effective_ef == pytest.approx(2.42 * 0.81)

    def test_overrides_replace_catalog_values(self):
        ev = evaluate_line(fuel_line(price_override=5000.0, ef_override=2.0, price_drift_pct=10), COAL, 0, 1)
        assert ev.effective_price == pytest.approx(5500)
        assert ev.effective_ef == 2.0

    def test_quantity_emissions_and_cost(self):
        ev = evaluate_line(fuel_line(), COAL, 2, 10, adoption=0.5)
        assert ev.quantity == -50.0
        assert ev.delta_emissions == pytest.approx(-121.0)
        assert ev.cost_cr == pytest.approx(-50 * 9000 / 10_000_000)

    def test_missing_catalog_entry_is_zero(self):
        ev = evaluate_line(fuel_line(), None, 0, 0)
        assert ev.effective_price == 0
        assert ev.effective_ef == 0
        assert ev.quantity == -100.0
        assert ev.delta_emissions == 0
        assert ev.cost_cr == 0

    def test_garbage_delta_is_zero(self):
        ev = evaluate_line(fuel_line(delta=('abc', None)), COAL, 0, 0)
        assert ev.quantity == 0
        assert evaluate_line(fuel_line(delta=()), COAL, 3, 0).quantity == 0

    def test_electricity_per_year_override_skips_drift(self):
        line = DriverLine(id=1, category='electricity', catalog_key='India', delta=(100.0, 100.0),
                          ef_override_per_year=(None, 0.5), ef_drift_pct=-5)
        escalated = evaluate_line(line, GRID, 0, 5)
        overridden = evaluate_line(line, GRID, 1, 5)
        assert escalated.effective_ef == pytest.approx(0.71 * 0.95 ** 5)
        assert overridden.effective_ef == 0.5
        assert overridden.delta_emissions == pytest.approx(50.0)
        assert overridden.cost_cr == pytest.approx(100 * 6500 / 10_000_000)

    def test_per_year_override_ignored_for_other_categories(self):
        line = fuel_line(ef_override_per_year=(9.9,) * 6)
        assert evaluate_line(line, COAL, 0, 0).effective_ef == COAL.ef_per_unit
