from datetime import datetime, timedelta, timezone

import pytest

from aquawatch.application.use_cases.maintenance_prediction import (
    MaintenancePredictionUseCase,
    round_half_up,
)
from aquawatch.core.domain.models import (
    MaintenanceType,
    Measurement,
    Priority,
    SortOrder,
    UnitProfile,
    UnitType,
)
from aquawatch.core.exceptions import InvalidInputError

from conftest import NOW, START, daily_series


@pytest.fixture
def predictor():
    return MaintenancePredictionUseCase()


def _unit(**overrides):
    data = dict(unit_id="unit-1", unit_name="Well 1", unit_type=UnitType.UVC)
    data.update(overrides)
    return UnitProfile(**data)


class TestFilterChange:
    def test_days_and_priority(self, predictor):
        prediction = predictor.predict_filter_change(_unit(current_volume=8000), 100.0, NOW)

        assert prediction.maintenance_type == MaintenanceType.FILTER_CHANGE
        assert prediction.estimated_days_remaining == 20
        assert prediction.priority == Priority.HIGH
        assert prediction.predicted_date == NOW + timedelta(days=20)
        assert prediction.confidence == 0.75

    def test_zero_usage_emits_nothing(self, predictor):
        assert predictor.predict_filter_change(_unit(current_volume=8000), 0.0, NOW) is None

    def test_threshold_already_crossed(self, predictor):
        assert predictor.predict_filter_change(_unit(current_volume=12000), 100.0, NOW) is None

    def test_beyond_horizon(self, predictor):
        assert predictor.predict_filter_change(_unit(current_volume=0), 10.0, NOW) is None


class TestAverageDailyVolume:
    def test_daily_maximum_then_mean(self):
        day = datetime(2024, 5, 1, tzinfo=timezone.utc)
        history = [
            Measurement(timestamp=day + timedelta(hours=1), volume=10),
            Measurement(timestamp=day + timedelta(hours=8), volume=50),
            Measurement(timestamp=day + timedelta(hours=20), volume=30),
            Measurement(timestamp=day + timedelta(days=1, hours=3), volume=70),
        ]
        assert MaintenancePredictionUseCase.average_daily_volume(history) == pytest.approx(60.0)

    def test_empty_history(self):
        assert MaintenancePredictionUseCase.average_daily_volume([]) == 0.0


class TestUvcReplacement:
    def test_rate_from_history_span(self, predictor):
        history = daily_series([100.0] * 46)
        prediction = predictor.predict_uvc_replacement(_unit(current_uvc_hours=4500), history, NOW)

        assert prediction.maintenance_type == MaintenanceType.UVC_REPLACEMENT
        assert prediction.estimated_days_remaining == 45
        assert prediction.priority == Priority.MEDIUM
        assert prediction.confidence == 0.85

    def test_span_is_at_least_one_day(self, predictor):
        history = daily_series([100.0])
        prediction = predictor.predict_uvc_replacement(_unit(current_uvc_hours=4500), history, NOW)
        assert prediction.estimated_days_remaining == 1

    def test_skipped_without_history_or_hours(self, predictor):
        assert predictor.predict_uvc_replacement(_unit(current_uvc_hours=4500), [], NOW) is None
        history = daily_series([100.0] * 10)
        assert predictor.predict_uvc_replacement(_unit(current_uvc_hours=0), history, NOW) is None


class TestGeneralService:
    def test_next_cycle(self, predictor):
        unit = _unit(setup_date=NOW - timedelta(days=300))
        prediction = predictor.predict_general_service(unit, NOW)

        assert prediction.maintenance_type == MaintenanceType.GENERAL_SERVICE
        assert prediction.estimated_days_remaining == 65
        assert prediction.priority == Priority.MEDIUM
        assert prediction.confidence == 0.9

    def test_full_cycle_on_anniversary(self, predictor):
        unit = _unit(setup_date=NOW - timedelta(days=365))
        prediction = predictor.predict_general_service(unit, NOW)
        assert prediction.estimated_days_remaining == 365
        assert prediction.priority == Priority.LOW

    def test_unknown_setup_date(self, predictor):
        assert predictor.predict_general_service(_unit(), NOW) is None

    def test_naive_dates_are_utc(self, predictor):
        unit = _unit(setup_date=datetime(2023, 6, 1))
        naive_now = datetime(2024, 3, 1)
        prediction = predictor.predict_general_service(unit, naive_now)
        assert prediction.predicted_date.tzinfo is not None


class TestPredict:
    def test_all_three_predictions(self, predictor, uvc_unit):
        history = daily_series([100.0] * 46)
        now = START + timedelta(days=45)
        predictions = predictor.predict(uvc_unit, history, SortOrder.ASCENDING, now=now)

        by_type = {p.maintenance_type: p for p in predictions}
        assert set(by_type) == set(MaintenanceType)
        assert by_type[MaintenanceType.FILTER_CHANGE].estimated_days_remaining == 20
        assert by_type[MaintenanceType.UVC_REPLACEMENT].estimated_days_remaining == 45
        assert by_type[MaintenanceType.GENERAL_SERVICE].estimated_days_remaining == 20

    def test_order_is_normalized(self, predictor, uvc_unit):
        history = daily_series([100.0] * 46)
        ascending = predictor.predict(uvc_unit, history, SortOrder.ASCENDING, now=NOW)
        descending = predictor.predict(uvc_unit, list(reversed(history)), SortOrder.DESCENDING, now=NOW)
        assert [p.estimated_days_remaining for p in ascending] == [
            p.estimated_days_remaining for p in descending
        ]

    def test_no_history(self, predictor, filter_unit):
        assert predictor.predict(filter_unit, [], SortOrder.ASCENDING, now=NOW) == []


@pytest.mark.parametrize("value, expected", [(2.5, 3), (2.4, 2), (19.5, 20), (0.49, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize("days, priority", [
    (1, Priority.HIGH),
    (29, Priority.HIGH),
    (30, Priority.MEDIUM),
    (89, Priority.MEDIUM),
    (90, Priority.LOW),
    (365, Priority.LOW),
])
def test_priority_boundaries(predictor, days, priority):
    assert predictor.priority_for(days) == priority


@pytest.mark.parametrize("current_volume, expected_days", [
    (2700, 365),
    (2680, None),
])
def test_filter_horizon_is_exclusive(predictor, current_volume, expected_days):
    prediction = predictor.predict_filter_change(_unit(current_volume=current_volume), 20.0, NOW)
    if expected_days is None:
        assert prediction is None
    else:
        assert prediction.estimated_days_remaining == expected_days


class TestNonFiniteVolumes:
    def test_filter_change_rejects_non_finite_rate(self, predictor):
        with pytest.raises(InvalidInputError):
            predictor.predict_filter_change(_unit(current_volume=8000), float("nan"), NOW)

    def test_other_predictions_survive_nan_volumes(self, predictor, uvc_unit):
        history = daily_series([float("nan")] * 10)
        predictions = predictor.predict(uvc_unit, history, SortOrder.ASCENDING, now=NOW)

        types = {p.maintenance_type for p in predictions}
        assert types == {MaintenanceType.UVC_REPLACEMENT, MaintenanceType.GENERAL_SERVICE}
