"""Tests for the telemetry simulator and CSV report."""
import csv
from datetime import datetime

import pytest

from acrelink.dashboard.report import REPORT_TITLE, ZONE_HEADER, build_report_rows, export_report
from acrelink.dashboard.telemetry import ZoneTelemetrySimulator, classify_moisture

NOW = datetime(2025, 6, 1, 14, 30)


@pytest.fixture
def telemetry():
    return ZoneTelemetrySimulator(seed=42, clock=lambda: NOW)


class TestClassify:

    @pytest.mark.parametrize("moisture,status", [
        (20, "Dry"), (34, "Dry"), (35, "Optimal"), (60, "Optimal"), (61, "Wet"), (89, "Wet"),
    ])
    def test_thresholds(self, moisture, status):
        assert classify_moisture(moisture) == status


class TestZoneTelemetrySimulator:
    """Test refresh, history and metrics."""

    def test_initial_zones(self, telemetry):
        assert [z.zone for z in telemetry.zones] == [
            "North Field", "South Field", "East Field", "West Field",
        ]
        assert telemetry.zones[0].status == "Dry"
        assert telemetry.history == []

    def test_initial_metrics(self, telemetry):
        metrics = telemetry.metrics()

        assert metrics.avg_moisture == 47
        assert metrics.dry_zones == ["North Field"]
        assert metrics.estimated_savings == 8901
        assert metrics.active_sensors == 4
        assert metrics.offline_sensors == 0

    def test_refresh_ranges(self, telemetry):
        for _ in range(25):
            for zone in telemetry.refresh():
                assert 20 <= zone.moisture <= 89
                assert 18 <= zone.temperature <= 27
                assert 3.0 <= zone.battery_voltage <= 3.8
                assert 70 <= zone.signal_strength <= 99
                assert zone.status == classify_moisture(zone.moisture)

    def test_history_is_capped(self):
        telemetry = ZoneTelemetrySimulator(history_size=5, seed=1)
        for _ in range(8):
            telemetry.refresh()

        assert len(telemetry.history) == 5
        assert telemetry.history[-1].moisture == {z.zone: z.moisture for z in telemetry.zones}

    def test_seeded_runs_match(self):
        a = ZoneTelemetrySimulator(seed=3)
        b = ZoneTelemetrySimulator(seed=3)
        assert a.refresh() == b.refresh()

    def test_average_battery(self):
        zones = [
            {"zone": "A", "moisture": 40, "temperature": 20, "battery_voltage": 3.0, "signal_strength": 80},
            {"zone": "B", "moisture": 50, "temperature": 20, "battery_voltage": 4.0, "signal_strength": 80},
        ]
        metrics = ZoneTelemetrySimulator(zones=zones).metrics()

        assert metrics.avg_battery_voltage == 3.5
        assert metrics.avg_moisture == 45

    def test_toggle_zone(self, telemetry):
        assert telemetry.toggle_zone("East Field") is False
        assert telemetry.toggle_zone("East Field") is True

        with pytest.raises(KeyError):
            telemetry.toggle_zone("Back Forty")

    def test_recent_history(self, telemetry):
        for _ in range(5):
            telemetry.refresh()

        assert telemetry.recent_history(3) == telemetry.history[-3:]
        assert telemetry.recent_history(7) == telemetry.history

    def test_week_window(self, telemetry):
        telemetry.refresh()
        window = telemetry.week_window()

        assert len(window) == 7
        assert window[3][0] == NOW.strftime("%a, %d %b")
        assert window[3][1] == telemetry.history[-1].moisture
        for _, values in window[4:]:
            assert set(values.values()) == {0}


class TestReport:
    """Test the CSV export."""

    def test_rows_layout(self, telemetry):
        rows = build_report_rows(telemetry, NOW)

        assert rows[0] == [REPORT_TITLE]
        assert rows[1] == ["Generated:", "2025-06-01 14:30:00"]
        assert ["Average Moisture", "47%"] in rows
        assert ["Estimated Savings", "$8901"] in rows
        header_at = rows.index(ZONE_HEADER)
        assert rows[header_at - 1] == ["Zone Data"]
        assert [row[0] for row in rows[header_at + 1:header_at + 5]] == [
            "North Field", "South Field", "East Field", "West Field",
        ]
        assert ["System Health"] in rows
        assert rows[-1] == ["Data Latency", "< 2 seconds"]

    def test_export_writes_dated_file(self, telemetry, tmp_path):
        path = export_report(telemetry, tmp_path / "reports", generated_at=NOW)

        assert path.name == "acrelink-validation-report-2025-06-01.csv"
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        assert rows[0] == [REPORT_TITLE]
        assert rows[2] == []
        assert ["Active Sensors", "4"] in rows
