# File: parking_reports/main.py
"""
Main application entry point for the Booking Report Engine

Wires settings, repository, download sink and controller together and opens
the report window. Without a configured backend URL the window runs on
generated demo bookings.

Usage:
    parking-reports [settings.yaml] [admin|customer]
"""

import logging
import os
import sys
from typing import List, Optional

from .application.report_controller import ReportController, ReportMode
from .config import AppConfig, ReportSettings
from .infrastructure.factories import BookingFactory, ProfileFactory
from .infrastructure.repositories import (
    BookingRepository, HttpBookingRepository, InMemoryBookingRepository
)
from .infrastructure.storage import FileSystemDownloadSink


def setup_logging(log_dir: str = "logs", level: int = logging.INFO):
    """Setup application logging configuration"""
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, 'parking_reports.log')),
            logging.StreamHandler(sys.stdout)
        ]
    )
    return logging.getLogger(__name__)


def build_repository(settings: ReportSettings, mode: ReportMode) -> BookingRepository:
    """HTTP repository when a backend is configured, demo data otherwise"""
    if settings.backend_url:
        path = settings.admin_report_path if mode is ReportMode.ADMIN else settings.user_report_path
        return HttpBookingRepository(settings, path)
    return InMemoryBookingRepository(BookingFactory(seed=42).create_random_many(25))


def build_controller(settings: ReportSettings, mode: ReportMode) -> ReportController:
    """Initialize all application components with dependency injection"""
    return ReportController(
        repository=build_repository(settings, mode),
        sink=FileSystemDownloadSink(settings.output_dir),
        settings=settings,
        mode=mode,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to start the application"""
    args = list(sys.argv[1:] if argv is None else argv)
    logger = setup_logging()
    logger.info(f"Starting {AppConfig.APP_NAME} v{AppConfig.VERSION}...")

    try:
        settings = ReportSettings.from_yaml(args[0]) if args else ReportSettings()
        mode = ReportMode(args[1]) if len(args) > 1 else ReportMode.ADMIN
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        controller = build_controller(settings, mode)
        profile = None if mode is ReportMode.ADMIN else ProfileFactory().create()

        # Imported here so headless use of the package never needs a display
        from .presentation.report_gui import ReportApp

        app = ReportApp(controller, profile=profile)
        app.run()
        logger.info("Application closed normally")
        return 0
    except Exception as e:
        logger.error(f"Application crashed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
