"""
Mock telemetry dashboard and report export.
"""

from .report import export_report
from .telemetry import ZoneTelemetrySimulator

__all__ = ["ZoneTelemetrySimulator", "export_report"]
