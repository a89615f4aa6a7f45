"""
SLA External Integrations
==========================

YAML business calendar file watcher.

Uses watchdog to reload the calendar without restarting the service and
clears the calculator's cache so the next calculation sees the new file.
"""

from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk_sla.core import ConfigurationException
from helpdesk_sla.sla.application import SLACalculator
from helpdesk_sla.sla.infrastructure.repositories import YAMLBusinessCalendarRepository
from helpdesk_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CalendarFileHandler(FileSystemEventHandler):
    """Watchdog event handler for business calendar file changes."""

    def __init__(self, watcher: "CalendarConfigWatcher"):
        self.watcher = watcher
        super().__init__()

    def _handle(self, path: str) -> None:
        if Path(path).resolve() == self.watcher.config_path.resolve():
            logger.info(f"Business calendar file changed: {path}")
            self.watcher.reload()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event):
        """Editors that save by rename show up as a create."""
        if event.is_directory:
            return
        self._handle(event.src_path)


class CalendarConfigWatcher:
    """
    Hot-reload of a YAML business calendar.

    On every change of the file the repository is reloaded and the
    calculator's cache cleared.
    """

    def __init__(
        self,
        repository: YAMLBusinessCalendarRepository,
        calculator: SLACalculator
    ):
        self._repository = repository
        self._calculator = calculator
        self._observer = None

    @property
    def config_path(self) -> Path:
        return self._repository.config_path

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def reload(self) -> bool:
        """Reload the calendar and drop cached configuration."""
        try:
            self._repository.reload()
        except (OSError, ConfigurationException) as e:
            logger.error(f"Failed to reload business calendar: {e}")
            return False

        self._calculator.clear_cache()
        logger.info("Business calendar reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching the calendar file for changes.

        Skips watching if the file doesn't exist or the platform can't
        watch it (e.g. some container filesystems).
        """
        if not self.config_path.exists():
            logger.info(f"Business calendar file doesn't exist, skipping file watch: {self.config_path}")
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                CalendarFileHandler(self),
                str(self.config_path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching business calendar: {self.config_path}")
        except OSError as e:
            logger.warning(f"File watching not available, using static calendar: {e}")
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
