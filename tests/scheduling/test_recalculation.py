"""
Tests for completion-triggered and full recalculation, plus production-rate
parsing. Pure functions - no database or Flask dependencies.
"""
import pytest
from datetime import date

from zeladoria.rocagem.scheduling.calculator import (
    recalculate_after_completion,
    recalculate_all_lots,
)
from zeladoria.rocagem.scheduling.config import (
    InvalidProductionRateError,
    MissingProductionRateError,
    SchedulingConfigurationError,
    parse_production_rates,
    validate_production_rate,
)

MONDAY = date(2024, 1, 1)
FRIDAY = date(2024, 1, 5)

RATES = {'lote1': 25000, 'lote2': 20000}


def make_area(area_id, lote=1, metragem_m2=25000, ordem=None, manual_schedule=False):
    return {
        'id': area_id,
        'lote': lote,
        'servico': 'rocagem',
        'metragem_m2': metragem_m2,
        'ordem': ordem,
        'manual_schedule': manual_schedule,
    }


@pytest.fixture
def two_lot_areas():
    """Three lot-1 areas and two lot-2 areas, one day each."""
    return [
        make_area(1, lote=1),
        make_area(2, lote=1),
        make_area(3, lote=1),
        make_area(4, lote=2, metragem_m2=20000),
        make_area(5, lote=2, metragem_m2=20000),
    ]


# ==============================================================================
# RECALCULATE AFTER COMPLETION
# ==============================================================================

class TestRecalculateAfterCompletion:
    """Tests for recalculate_after_completion."""

    def test_only_affected_lot_is_recalculated(self, two_lot_areas):
        """Test that a lot-2 completion yields lot-2 entries only."""
        results = recalculate_after_completion(two_lot_areas, [4], RATES, MONDAY)

        assert results
        assert {r.area_id for r in results} <= {4, 5}
        assert not any(r.area_id in (1, 2, 3) for r in results)

    def test_completed_area_is_not_rescheduled(self, two_lot_areas):
        """Test that the just-completed area is left out of its own recalculation."""
        results = recalculate_after_completion(two_lot_areas, [1], RATES, MONDAY)

        assert [r.area_id for r in results] == [2, 3]

    def test_starts_tomorrow(self, two_lot_areas):
        """Test that the recomputed queue starts the day after the reference date."""
        results = recalculate_after_completion(two_lot_areas, [1], RATES, MONDAY)

        assert [r.proxima_previsao for r in results] == ['2024-01-02', '2024-01-03']

    def test_friday_completion_starts_monday(self, two_lot_areas):
        """Test that tomorrow falling on Saturday rolls to Monday."""
        results = recalculate_after_completion(two_lot_areas, [4], RATES, FRIDAY)

        assert [(r.area_id, r.proxima_previsao) for r in results] == [(5, '2024-01-08')]

    def test_both_lots_affected(self, two_lot_areas):
        """Test that completions in two lots recalculate both, in first-seen order."""
        results = recalculate_after_completion(two_lot_areas, [5, 1], RATES, MONDAY)

        assert [r.area_id for r in results] == [4, 2, 3]

    def test_lot_is_recalculated_once(self, two_lot_areas):
        """Test that several completions in one lot do not duplicate results."""
        results = recalculate_after_completion(two_lot_areas, [1, 2, 1], RATES, MONDAY)

        assert [r.area_id for r in results] == [3]

    def test_unknown_area_is_skipped(self, two_lot_areas):
        """Test that an id not present contributes nothing."""
        assert recalculate_after_completion(two_lot_areas, [999], RATES, MONDAY) == []

    def test_area_without_lot_is_skipped(self):
        """Test that a completed area with no lote contributes nothing."""
        areas = [make_area(1, lote=None), make_area(2, lote=1)]
        assert recalculate_after_completion(areas, [1], RATES, MONDAY) == []

    def test_empty_completion_list(self, two_lot_areas):
        """Test that no completions means no work."""
        assert recalculate_after_completion(two_lot_areas, [], RATES, MONDAY) == []

    def test_manual_areas_stay_excluded(self, two_lot_areas):
        """Test that manual areas are still excluded on recalculation."""
        two_lot_areas.append(make_area(6, lote=1, manual_schedule=True))

        results = recalculate_after_completion(two_lot_areas, [1], RATES, MONDAY)

        assert 6 not in [r.area_id for r in results]

    def test_accepts_lot_keyed_mapping(self, two_lot_areas):
        """Test {lote: rate} mappings as well as the stored record."""
        results = recalculate_after_completion(two_lot_areas, [1], {1: 25000}, MONDAY)
        assert [r.area_id for r in results] == [2, 3]

    def test_uses_the_affected_lots_rate(self):
        """Test that each lot is paced by its own rate."""
        areas = [make_area(1, lote=2, metragem_m2=1), make_area(2, lote=2, metragem_m2=40000)]

        results = recalculate_after_completion(areas, [1], {'lote1': 40000, 'lote2': 10000}, MONDAY)

        assert results[0].days_to_complete == 4

    def test_supports_more_than_two_lots(self):
        """Test a lot number beyond 2."""
        areas = [make_area(1, lote=3), make_area(2, lote=3)]

        results = recalculate_after_completion(areas, [1], {'lote3': 25000}, MONDAY)

        assert [r.area_id for r in results] == [2]

    def test_missing_rate_raises(self, two_lot_areas):
        """Test that an affected lot with no configured rate is a configuration error."""
        with pytest.raises(MissingProductionRateError):
            recalculate_after_completion(two_lot_areas, [4], {'lote1': 25000}, MONDAY)

    def test_invalid_rate_raises(self, two_lot_areas):
        """Test that a zero rate is rejected."""
        with pytest.raises(InvalidProductionRateError):
            recalculate_after_completion(two_lot_areas, [1], {'lote1': 0, 'lote2': 20000}, MONDAY)

    def test_does_not_mutate_input(self, two_lot_areas):
        """Test that the area list is left untouched."""
        before = [dict(a) for a in two_lot_areas]
        recalculate_after_completion(two_lot_areas, [1, 4], RATES, MONDAY)
        assert two_lot_areas == before


# ==============================================================================
# RECALCULATE ALL LOTS
# ==============================================================================

class TestRecalculateAllLots:
    """Tests for recalculate_all_lots."""

    def test_every_configured_lot_is_scheduled(self, two_lot_areas):
        """Test that all lots are scheduled from the reference date, lot by lot."""
        results = recalculate_all_lots(two_lot_areas, RATES, MONDAY)

        assert [(r.area_id, r.proxima_previsao) for r in results] == [
            (1, '2024-01-01'),
            (2, '2024-01-02'),
            (3, '2024-01-03'),
            (4, '2024-01-01'),
            (5, '2024-01-02'),
        ]

    def test_lots_without_rate_are_not_scheduled(self, two_lot_areas):
        """Test that only configured lots are processed."""
        results = recalculate_all_lots(two_lot_areas, {'lote2': 20000}, MONDAY)
        assert [r.area_id for r in results] == [4, 5]

    def test_no_areas(self):
        """Test an empty area list."""
        assert recalculate_all_lots([], RATES, MONDAY) == []


# ==============================================================================
# PRODUCTION RATE PARSING
# ==============================================================================

class TestProductionRates:
    """Tests for parse_production_rates and validate_production_rate."""

    def test_parses_stored_record(self):
        """Test the app_config shape."""
        assert parse_production_rates({'lote1': 85000, 'lote2': 70000}) == {1: 85000.0, 2: 70000.0}

    def test_ignores_non_lot_keys(self):
        """Test that extra keys such as monthly goals are ignored."""
        raw = {'lote1': 85000, 'metaMensal': 3125000, 'metaLote1': 1562500}
        assert parse_production_rates(raw) == {1: 85000.0}

    def test_accepts_integer_keys(self):
        """Test already-keyed mappings."""
        assert parse_production_rates({1: 100, 7: 200.5}) == {1: 100.0, 7: 200.5}

    def test_empty_record(self):
        """Test None/empty input."""
        assert parse_production_rates(None) == {}
        assert parse_production_rates({}) == {}

    @pytest.mark.parametrize("rate", [0, -1, float('nan'), float('-inf'), 'abc', None, False])
    def test_invalid_values_raise(self, rate):
        """Test that every non-positive or non-numeric rate is rejected."""
        with pytest.raises(InvalidProductionRateError):
            parse_production_rates({'lote1': rate})

    def test_configuration_errors_are_value_errors(self):
        """Test the error hierarchy."""
        assert issubclass(InvalidProductionRateError, SchedulingConfigurationError)
        assert issubclass(MissingProductionRateError, SchedulingConfigurationError)
        assert issubclass(SchedulingConfigurationError, ValueError)

    def test_validate_returns_float(self):
        """Test that integer rates are returned as floats."""
        assert validate_production_rate(85000) == 85000.0
        assert isinstance(validate_production_rate(85000), float)

    def test_strict_rejects_non_lot_keys(self):
        """Test that strict parsing refuses keys that do not name a lot."""
        with pytest.raises(SchedulingConfigurationError):
            parse_production_rates({'foo': 1}, strict=True)

    def test_strict_accepts_lot_keys(self):
        """Test that strict parsing still accepts loteN keys."""
        assert parse_production_rates({'lote2': 65000}, strict=True) == {2: 65000.0}
