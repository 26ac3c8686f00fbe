"""
CSV report export for the dashboard.
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List

from .telemetry import ZoneTelemetrySimulator

logger = logging.getLogger(__name__)

REPORT_TITLE = "AcreLink Validation Dashboard Report"
ZONE_HEADER = [
    "Zone", "Moisture %", "Temperature °C", "Status",
    "Last Irrigation", "Battery (V)", "Signal %",
]


def report_filename(day: datetime) -> str:
    return f"acrelink-validation-report-{day.strftime('%Y-%m-%d')}.csv"


def build_report_rows(telemetry: ZoneTelemetrySimulator, generated_at: datetime) -> List[List[Any]]:
    """
    Assemble the report as rows of cells.

    Layout: title, generation time, key metrics block, zone table and
    system health block, separated by blank rows.
    """
    metrics = telemetry.metrics()

    rows: List[List[Any]] = [
        [REPORT_TITLE],
        ["Generated:", generated_at.strftime("%Y-%m-%d %H:%M:%S")],
        [],
        ["Key Performance Metrics"],
        ["Average Moisture", f"{metrics.avg_moisture}%"],
        ["Water Saved YTD", f"{metrics.water_saved_ytd} acre-feet"],
        ["Estimated Savings", f"${metrics.estimated_savings}"],
        ["Sensor Uptime", f"{metrics.sensor_uptime}%"],
        [],
        ["Zone Data"],
        ZONE_HEADER,
    ]
    for zone in telemetry.zones:
        rows.append([
            zone.zone,
            zone.moisture,
            zone.temperature,
            zone.status,
            zone.last_irrigation,
            zone.battery_voltage,
            zone.signal_strength,
        ])
    rows.extend([
        [],
        ["System Health"],
        ["Active Sensors", metrics.active_sensors],
        ["Offline Sensors", metrics.offline_sensors],
        ["Avg Battery Voltage", f"{metrics.avg_battery_voltage}V"],
        ["Data Latency", metrics.data_latency],
    ])
    return rows


def export_report(
    telemetry: ZoneTelemetrySimulator,
    output_dir,
    generated_at: datetime = None
) -> Path:
    """
    Write the dashboard report to ``output_dir``.

    Returns:
        Path of the written CSV file
    """
    generated_at = generated_at or datetime.now()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / report_filename(generated_at)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(build_report_rows(telemetry, generated_at))

    logger.info(f"Report written to {path}")
    return path
