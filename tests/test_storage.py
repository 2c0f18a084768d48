import csv
import json
from datetime import datetime, timezone

import pytest

from aquawatch.core.domain.models import (
    AlertRecord,
    MaintenancePrediction,
    MaintenanceType,
    Priority,
    Severity,
    SortOrder,
    UnitType,
)
from aquawatch.core.exceptions import MeasurementFetchError, StorageError, UnitNotFoundError
from aquawatch.infrastructure.storage import (
    CsvAlertSink,
    CsvMeasurementStore,
    CsvPredictionStore,
    JsonUnitRegistry,
    select_latest,
)

from conftest import daily_series


@pytest.fixture
def measurements_csv(tmp_path):
    path = tmp_path / "measurements.csv"
    path.write_text(
        "unit_id,timestamp,volume,temperature,uvc_hours\n"
        "u1,2024-01-01T08:00:00Z,100,21.5,1200\n"
        "u2,2024-01-01T09:00:00Z,55,,\n"
        "u1,2024-01-03T08:00:00Z,130,22.0,1250\n"
        "u1,2024-01-02T08:00:00Z,120,,1225\n"
    )
    return path


class TestCsvMeasurementStore:
    @pytest.mark.asyncio
    async def test_fetch_newest_first(self, measurements_csv):
        store = CsvMeasurementStore(str(measurements_csv))
        result = await store.fetch_measurements("u1")

        assert [m.volume for m in result] == [130.0, 120.0, 100.0]
        assert result[0].timestamp == datetime(2024, 1, 3, 8, tzinfo=timezone.utc)
        assert result[1].temperature is None
        assert result[2].uvc_hours == 1200.0

    @pytest.mark.asyncio
    async def test_limit_and_ascending(self, measurements_csv):
        store = CsvMeasurementStore(str(measurements_csv))
        result = await store.fetch_measurements("u1", order=SortOrder.ASCENDING, limit=2)
        assert [m.volume for m in result] == [120.0, 130.0]

    @pytest.mark.asyncio
    async def test_units_are_separated(self, measurements_csv):
        store = CsvMeasurementStore(str(measurements_csv))
        result = await store.fetch_measurements("u2")
        assert len(result) == 1
        assert result[0].temperature is None
        assert await store.fetch_measurements("u3") == []

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        store = CsvMeasurementStore(str(tmp_path / "nope.csv"))
        with pytest.raises(MeasurementFetchError):
            await store.fetch_measurements("u1")

    @pytest.mark.asyncio
    async def test_missing_columns(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("unit_id,volume\nu1,10\n")
        with pytest.raises(MeasurementFetchError):
            await CsvMeasurementStore(str(path)).fetch_measurements("u1")


def test_select_latest_keeps_newest():
    series = daily_series([1.0, 2.0, 3.0, 4.0])
    assert [m.volume for m in select_latest(series, SortOrder.DESCENDING, 2)] == [4.0, 3.0]
    assert [m.volume for m in select_latest(series, SortOrder.ASCENDING, 2)] == [3.0, 4.0]


class TestJsonUnitRegistry:
    @pytest.mark.asyncio
    async def test_list_format(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text(json.dumps([
            {"unit_id": "u1", "unit_name": "Clinic", "unit_type": "uvc",
             "current_volume": 4000, "current_uvc_hours": 1200, "setup_date": "2023-05-01T00:00:00"},
        ]))
        unit = await JsonUnitRegistry(str(path)).get_unit("u1")

        assert unit.unit_name == "Clinic"
        assert unit.unit_type == UnitType.UVC
        assert unit.setup_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_mapping_format(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text(json.dumps({"u2": {"unit_type": "filter", "current_volume": 10}}))
        unit = await JsonUnitRegistry(str(path)).get_unit("u2")

        assert unit.unit_id == "u2"
        assert unit.display_name == "u2"
        assert unit.unit_type == UnitType.FILTER

    @pytest.mark.asyncio
    async def test_unknown_unit(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text("[]")
        with pytest.raises(UnitNotFoundError):
            await JsonUnitRegistry(str(path)).get_unit("u1")

    @pytest.mark.asyncio
    async def test_invalid_file(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text("{not json")
        with pytest.raises(StorageError):
            await JsonUnitRegistry(str(path)).get_unit("u1")

    @pytest.mark.asyncio
    async def test_entry_without_unit_id(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text(json.dumps([{"unit_name": "Orphan"}]))
        with pytest.raises(StorageError) as exc_info:
            await JsonUnitRegistry(str(path)).get_unit("u1")
        assert isinstance(exc_info.value.cause, KeyError)

    @pytest.mark.asyncio
    async def test_invalid_profile(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text(json.dumps([{"unit_id": "u1", "current_volume": -5}]))
        with pytest.raises(StorageError) as exc_info:
            await JsonUnitRegistry(str(path)).get_unit("u1")
        assert not isinstance(exc_info.value, UnitNotFoundError)
        assert "u1" in exc_info.value.message


class TestCsvSinks:
    @pytest.mark.asyncio
    async def test_alerts_append_with_single_header(self, tmp_path):
        sink = CsvAlertSink(str(tmp_path / "out" / "alerts.csv"))
        created = datetime(2024, 2, 1, tzinfo=timezone.utc)
        first = await sink.create_alert(AlertRecord(
            unit_id="u1", message="[AI Detection] Clinic: spike", severity=Severity.HIGH, created_at=created,
        ))
        second = await sink.create_alert(AlertRecord(
            unit_id="u1", message="[AI Detection] Clinic: again", severity=Severity.HIGH, created_at=created,
        ))

        assert first != second
        with open(sink.path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 2
        assert rows[0]["severity"] == "high"
        assert rows[1]["message"] == "[AI Detection] Clinic: again"

    @pytest.mark.asyncio
    async def test_predictions_append(self, tmp_path):
        store = CsvPredictionStore(str(tmp_path / "predictions.csv"))
        prediction = MaintenancePrediction(
            unit_id="u1",
            maintenance_type=MaintenanceType.FILTER_CHANGE,
            predicted_date=datetime(2024, 3, 1, tzinfo=timezone.utc),
            estimated_days_remaining=20,
            confidence=0.75,
            priority=Priority.HIGH,
        )
        assert await store.save_prediction(prediction) == prediction.id

        with open(store.path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["maintenance_type"] == "filter_change"
        assert rows[0]["estimated_days_remaining"] == "20"
