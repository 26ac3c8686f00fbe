"""
AcreLink Service Mode - Main Application

Command-line entry point for the sensor registry workflow and the mock
telemetry dashboard.

Usage:
    python -m acrelink.main --list-sites
    python -m acrelink.main --site demo-a --search 00
    python -m acrelink.main --site demo-a --add ACR-0050 --depth shallow --simulate --capture-gps
    python -m acrelink.main --site demo-a --visit ACR-0001 ACR-0002 --remarks "Checked seals"
    python -m acrelink.main --dashboard --duration 60
    python -m acrelink.main --export-report
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

from .config import load_config, resolve_path
from .dashboard.report import export_report
from .dashboard.telemetry import ZoneTelemetrySimulator
from .registry.geolocation import build_provider, options_from_config
from .registry.mock_fleet import MockFleetGenerator
from .registry.models import Depth, SensorRecord, SensorStatus
from .registry.storage import JsonFileStorage
from .registry.store import SensorStore
from .service import ServiceSession


class ServiceApp:
    """Wires configuration, logging, storage, the session and the dashboard."""

    def __init__(
        self,
        config: Dict[str, Any],
        simulate: bool = False,
        log_level: str = "INFO",
        storage_path: Optional[str] = None
    ):
        """
        Initialize the application.

        Args:
            config: Configuration dictionary (see config/config.yaml)
            simulate: Use simulated GPS regardless of configuration
            log_level: Logging level
            storage_path: Override for the storage file location
        """
        self.config = config
        self.simulate = simulate
        self.running = False

        self._setup_logging(log_level)

        seed = self.config.get('seed', {}).get('random_seed')
        generator = MockFleetGenerator(sites=self.config.get('sites'), seed=seed)

        path = storage_path or self.config.get('storage', {}).get('path', 'data/service_storage.json')
        self.storage = JsonFileStorage(resolve_path(self.config, path))
        self.store = SensorStore(self.storage, generator)

        self.session = ServiceSession(
            self.store,
            geolocation=build_provider(self.config, simulate=simulate),
            position_options=options_from_config(self.config),
            technician=self.config.get('technician', {}).get('name', 'Parker'),
        )
        self.session.notifier.listeners.append(
            lambda note: print(("✗ " if note.level == "error" else "✓ ") + note.message)
        )

        dash_config = self.config.get('dashboard', {})
        self.telemetry = ZoneTelemetrySimulator(
            zones=dash_config.get('zones'),
            history_size=dash_config.get('history_size', 20),
            seed=seed,
        )
        self.refresh_interval = dash_config.get('refresh_interval_seconds', 10)

        self.logger.info(f"Service app initialized (simulate={self.simulate})")

    def _setup_logging(self, log_level: str) -> None:
        """Configure logging with file and console handlers."""
        log_config = self.config.get('logging', {})

        self.logger = logging.getLogger('acrelink')
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        self.logger.handlers.clear()

        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

        if log_config.get('console', {}).get('enabled', True):
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_config.get('file', {}).get('enabled', True):
            log_path = resolve_path(self.config, log_config.get('file', {}).get('path', 'logs/service.log'))
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=log_config.get('file', {}).get('max_bytes', 10485760),
                backupCount=log_config.get('file', {}).get('backup_count', 5)
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def run_dashboard(self, duration: Optional[int] = None, interval: Optional[float] = None) -> None:
        """
        Refresh the mock telemetry on a fixed interval.

        Args:
            duration: Optional duration in seconds (None = run indefinitely)
            interval: Seconds between refreshes (defaults to configuration)
        """
        self.running = True
        interval = interval if interval is not None else self.refresh_interval
        start_time = time.time()

        self.logger.info(f"Starting dashboard loop (interval={interval}s)")

        try:
            while self.running:
                if duration and (time.time() - start_time) >= duration:
                    self.logger.info(f"Duration limit ({duration}s) reached")
                    break

                self.telemetry.refresh()
                metrics = self.telemetry.metrics()
                print_zones(self.telemetry)

                for zone in metrics.dry_zones:
                    self.logger.warning(f"ALERT: {zone} drying faster than normal")

                time.sleep(interval)

        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            self.stop()

    def stop(self) -> None:
        self.running = False
        self.logger.info("Dashboard stopped")

    def export_report(self, output_dir: Optional[str] = None):
        report_dir = output_dir or self.config.get('report', {}).get('output_dir', 'reports')
        return export_report(self.telemetry, resolve_path(self.config, report_dir))


# ----------------------------------------------------------------------
# Output helpers
# ----------------------------------------------------------------------
def print_sensor(sensor: SensorRecord) -> None:
    gps = f"captured (±{sensor.gps.accuracy_ft} ft)" if sensor.gps else "Not captured"
    depth = sensor.depth.value if sensor.depth else "—"
    print(f"{sensor.id:<10} Depth: {depth:<18} GPS: {gps:<22} Status: {sensor.status.value}")
    if sensor.notes:
        print(f"{'':<10} Note: {sensor.notes}")


def print_zones(telemetry: ZoneTelemetrySimulator) -> None:
    metrics = telemetry.metrics()
    print(f"Last updated: {telemetry.last_updated.strftime('%H:%M:%S')}  "
          f"Avg moisture: {metrics.avg_moisture}%  Avg battery: {metrics.avg_battery_voltage}V")
    for zone in telemetry.zones:
        print(f"  {zone.zone:<12} {zone.moisture:>3}%  {zone.temperature:>3}°C  {zone.status:<8} "
              f"{zone.battery_voltage}V  {zone.signal_strength}%")


def apply_draft_fields(draft: SensorRecord, args: argparse.Namespace) -> None:
    """
    Copy editable fields from the command line into a draft.

    Raises:
        ValueError: If depth or status is not recognized
    """
    if args.new_id is not None:
        draft.id = args.new_id
    if args.depth is not None:
        draft.depth = Depth.parse(args.depth)
    if args.status is not None:
        draft.status = SensorStatus.parse(args.status)
    if args.label is not None:
        draft.label = args.label
    if args.notes is not None:
        draft.notes = args.notes
    if args.install_date is not None:
        draft.install_date = args.install_date


def setup_signal_handlers(app: ServiceApp) -> None:
    """Setup signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        print("\nShutdown signal received...")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def edit_sensor(app: ServiceApp, args: argparse.Namespace) -> bool:
    session = app.session
    if args.add:
        draft = session.open_create()
        if draft is None:
            return False
        draft.id = args.add
    else:
        draft = session.open_edit(args.edit)
        if draft is None:
            return False

    try:
        apply_draft_fields(draft, args)
    except ValueError as e:
        session.notifier.error(str(e))
        session.cancel_draft()
        return False

    if args.clear_gps:
        session.clear_gps()

    if args.capture_gps and asyncio.run(session.capture_gps()) is None:
        session.cancel_draft()
        return False

    saved = session.save_draft()
    if saved is None:
        session.cancel_draft()
        return False

    print_sensor(saved)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='AcreLink Service Mode',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m acrelink.main --list-sites
  python -m acrelink.main --site demo-a --search 000
  python -m acrelink.main --site demo-a --add ACR-0050 --depth shallow
  python -m acrelink.main --site demo-a --edit ACR-0001 --status installed --simulate --capture-gps
  python -m acrelink.main --edit ACR-0001 --clear-gps
  python -m acrelink.main --delete ACR-0002
  python -m acrelink.main --site demo-a --visit ACR-0001 ACR-0003 --remarks "Checked seals"
  python -m acrelink.main --dashboard --duration 60
  python -m acrelink.main --export-report
        """
    )

    parser.add_argument('--config', '-c', type=str, default=None, help='Path to config.yaml')
    parser.add_argument('--storage', type=str, default=None, help='Path to the storage JSON file')
    parser.add_argument(
        '--log-level', '-l',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    parser.add_argument('--simulate', '-s', action='store_true', help='Use simulated GPS fixes')

    parser.add_argument('--list-sites', action='store_true', help='List sites and planned sensor counts')
    parser.add_argument('--site', '-S', type=str, default=None, help='Site to work on')
    parser.add_argument('--search', '-q', type=str, default='', help='Filter sensors by id or label')

    action = parser.add_mutually_exclusive_group()
    action.add_argument('--add', type=str, metavar='ID', help='Add a sensor to the selected site')
    action.add_argument('--edit', type=str, metavar='ID', help='Edit an existing sensor')
    action.add_argument('--delete', type=str, metavar='ID', help='Delete a sensor')
    action.add_argument('--visit', nargs='+', metavar='ID', help='Record a visit to these sensors')

    parser.add_argument('--new-id', type=str, default=None, help='Rename the sensor being edited')
    parser.add_argument('--depth', type=str, default=None, help='shallow, medium or deep')
    parser.add_argument('--status', type=str, default=None,
                        help='planned, installed, "needs service" or offline')
    parser.add_argument('--label', type=str, default=None, help='Display label')
    parser.add_argument('--notes', type=str, default=None, help='Free-text notes')
    parser.add_argument('--install-date', type=str, default=None, help='YYYY-MM-DD')
    parser.add_argument('--capture-gps', action='store_true', help='Capture GPS before saving')
    parser.add_argument('--clear-gps', action='store_true', help='Remove the stored GPS fix')
    parser.add_argument('--remarks', type=str, default='', help='Remarks for --visit')

    parser.add_argument('--dashboard', action='store_true', help='Run the telemetry dashboard loop')
    parser.add_argument('--duration', '-d', type=int, default=None,
                        help='Run the dashboard for this many seconds (default: indefinite)')
    parser.add_argument('--interval', type=float, default=None, help='Seconds between dashboard refreshes')
    parser.add_argument('--export-report', action='store_true', help='Write the dashboard CSV report')
    parser.add_argument('--output-dir', type=str, default=None, help='Directory for --export-report')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    app = ServiceApp(config, simulate=args.simulate, log_level=args.log_level, storage_path=args.storage)
    session = app.session

    if args.list_sites:
        for site in session.sites():
            print(f"{site.id:<10} {site.name:<14} {site.describe()}")

    if args.site:
        try:
            session.select_site(args.site)
        except KeyError as e:
            print(f"Error: {e.args[0]}")
            return 1

    ok = True
    if args.add or args.edit:
        ok = edit_sensor(app, args)
    elif args.delete:
        ok = session.delete_sensor(args.delete)
    elif args.visit:
        picked = [session.pick(sensor_id) for sensor_id in dict.fromkeys(args.visit)]
        ok = all(picked) and session.save_selection(args.remarks) is not None
    elif session.has_site:
        session.set_search(args.search)
        visible = session.visible()
        if not visible:
            print("No sensors found.")
        for sensor in visible:
            print_sensor(sensor)

    if args.dashboard:
        setup_signal_handlers(app)
        app.run_dashboard(duration=args.duration, interval=args.interval)

    if args.export_report:
        path = app.export_report(args.output_dir)
        print(f"Report written to {path}")

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
