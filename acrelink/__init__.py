"""
AcreLink Service Mode

Field-technician tooling for tagging and tracking soil-moisture sensor
deployments, plus a mock telemetry dashboard with CSV report export.
"""

__version__ = "1.0.0"
__author__ = "AcreLink Team"
