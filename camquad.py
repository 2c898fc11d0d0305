#!/usr/bin/env python3
"""
CamQuad - 2x2 live view of discovered IP cameras with HQ/LQ stream switching
"""

import argparse
import functools
import logging
import os
import sys
import traceback
from pathlib import Path
from PyQt6.QtCore import QEventLoop, Qt  # type: ignore
from PyQt6.QtWidgets import QApplication, QLabel, QMessageBox  # type: ignore

from camquad import __version__
from camquad.exceptions import CamQuadException, ConfigLoadError, ConfigSaveError
from camquad.ui_strings import UIStrings

# Import qdarkstyle for dark theme
try:
    import qdarkstyle

    has_dark_style = True
except ImportError:
    has_dark_style = False
    # Logged after logging setup in main()

from camquad.controllers.session_supervisor import StreamManager
from camquad.controllers.stream_session import StreamSession, build_ffmpeg_command
from camquad.models.camera import Camera
from camquad.models.config_manager import ConfigManager
from camquad.ui.discovery_thread import DiscoveryThread
from camquad.ui.main_window import MainWindow
from camquad.utils import get_app_data_dir

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def log_file_path() -> Path:
    log_dir = get_app_data_dir() / "logs"
    log_dir.mkdir(exist_ok=True)
    return log_dir / "camquad.log"


def enable_file_logging() -> Path:
    """Add the app-data log file to the root logger (once)"""
    log_file = log_file_path()
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file:
            return log_file
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    logging.getLogger(__name__).info(f"Log file: {log_file}")
    return log_file


def setup_logging(debug: bool = False, file_logging_enabled: bool = False) -> None:
    """Configure application logging

    Args:
        debug: If True, log at DEBUG instead of INFO
        file_logging_enabled: If True, logs to file in addition to console
    """
    # Configure root logger
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)

    # Write Python fatal crash diagnostics to a separate file when possible.
    try:
        import faulthandler

        crash_file = log_file_path().with_name("camquad-crash.log")
        crash_stream = crash_file.open("a", encoding="utf-8")
        faulthandler.enable(file=crash_stream, all_threads=True)
        logger.info(f"Faulthandler enabled: {crash_file}")
    except Exception as e:
        logger.debug(f"Could not enable faulthandler: {e}")
    logger.info(f"CamQuad {__version__} starting")
    if file_logging_enabled:
        enable_file_logging()
    else:
        logger.info("File logging disabled (console only)")
    logger.info("=" * 60)



def exception_hook(exc_type, exc_value, exc_traceback):
    """Global exception handler to prevent app crashes"""
    # Don't catch KeyboardInterrupt - let it exit normally
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))

    error_msg = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))

    error_title = UIStrings.ERROR_CRITICAL
    if issubclass(exc_type, CamQuadException):
        error_title = f"{type(exc_value).__name__}"

    try:
        msg_box = QMessageBox()
        msg_box.setIcon(QMessageBox.Icon.Critical)
        msg_box.setWindowTitle(error_title)
        msg_box.setText(UIStrings.ERROR_GENERIC)
        msg_box.setDetailedText(error_msg)
        msg_box.setStandardButtons(QMessageBox.StandardButton.Ok)
        msg_box.exec()
    except Exception:
        # If even the error dialog fails, just log it
        logger.exception("Failed to show error dialog")


class ExceptionHandlingApplication(QApplication):
    """QApplication subclass that catches Qt event exceptions"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.logger = logging.getLogger(__name__)

    def notify(self, receiver, event) -> bool:
        """Override notify to catch exceptions in Qt event handlers"""
        try:
            return super().notify(receiver, event)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            error_msg = f"Exception in Qt event handler: {str(e)}"
            self.logger.exception(error_msg)

            try:
                msg_box = QMessageBox()
                msg_box.setIcon(QMessageBox.Icon.Critical)
                msg_box.setWindowTitle(UIStrings.ERROR_QT_EVENT)
                msg_box.setText(UIStrings.ERROR_QT_EVENT_MSG)
                msg_box.setDetailedText(f"{error_msg}\n\n{traceback.format_exc()}")
                msg_box.setStandardButtons(QMessageBox.StandardButton.Ok)
                msg_box.exec()
            except Exception:
                self.logger.exception("Failed to show Qt event error dialog")

            # Don't crash, return False to indicate event wasn't handled
            return False


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="camquad", description=__doc__.strip())
    parser.add_argument("--debug", action="store_true", help="verbose (DEBUG) logging")
    parser.add_argument("--file-log", action="store_true", help="also log to the app data folder")
    parser.add_argument("config", nargs="?", help="camera list (JSON), default in app data folder")
    return parser.parse_args(argv)


def load_cameras(config: ConfigManager) -> list[Camera]:
    """Configured cameras, or [] when the config is missing or unreadable"""
    logger = logging.getLogger(__name__)
    try:
        config.load()
    except ConfigLoadError as e:
        logger.warning(f"{UIStrings.ERROR_CONFIG_LOAD}: {e}")
        return []
    return config.get_cameras()


def load_config(args: argparse.Namespace) -> tuple[ConfigManager, list[Camera]]:
    """Read the config once logging is up, then honor its file-logging preference"""
    config = ConfigManager(args.config)
    cameras = load_cameras(config)
    if config.get_file_logging_enabled() and not args.file_log:
        enable_file_logging()
    return config, cameras


def discover(config: ConfigManager) -> list[Camera]:
    """Run discovery off the GUI thread while a status label is shown"""
    logger = logging.getLogger(__name__)

    status = QLabel(UIStrings.STATUS_SEARCHING)
    status.setWindowTitle(UIStrings.APP_NAME)
    status.setAlignment(Qt.AlignmentFlag.AlignCenter)
    status.setMinimumSize(320, 80)
    status.show()

    found: list[Camera] = []
    thread = DiscoveryThread(
        config.get_scan_subnet(),
        config.get_scan_port(),
        config.get_scan_timeout(),
        config.get_max_cameras(),
    )
    loop = QEventLoop()
    thread.cameras_found.connect(found.extend, Qt.ConnectionType.DirectConnection)
    thread.finished.connect(loop.quit)
    thread.start()
    loop.exec()
    thread.wait()
    status.close()

    cameras = found
    if not cameras:
        logger.warning(UIStrings.STATUS_NONE_FOUND)
        return []

    try:
        config.set_cameras(cameras)
        logger.info(f"Saved {len(cameras)} discovered camera(s) to {config.config_path}")
    except ConfigSaveError as e:
        logger.warning(f"{UIStrings.ERROR_CONFIG_SAVE}: {e}")
    return cameras


def main() -> int:
    """Main application entry point"""
    args = parse_args(sys.argv[1:])

    setup_logging(args.debug, args.file_log)
    logger = logging.getLogger(__name__)
    logger.info("Starting CamQuad application")

    config, cameras = load_config(args)

    if not has_dark_style:
        logger.warning("qdarkstyle not installed, using default theme")

    # Install global exception handler
    sys.excepthook = exception_hook

    app = ExceptionHandlingApplication(sys.argv[:1])
    app.setApplicationName(UIStrings.APP_NAME)
    app.setOrganizationName(UIStrings.APP_NAME)

    if has_dark_style:
        app.setStyleSheet(qdarkstyle.load_stylesheet(qt_api="pyqt6"))

    if cameras:
        logger.info(f"Loaded {len(cameras)} camera(s) from {config.config_path}")
    else:
        cameras = discover(config)
    cameras = cameras[: config.get_max_cameras()]

    command_builder = functools.partial(build_ffmpeg_command, ffmpeg_path=config.get_ffmpeg_path())
    manager = StreamManager(
        session_factory=functools.partial(StreamSession, command_builder=command_builder),
        max_cameras=config.get_max_cameras(),
    )

    try:
        window = MainWindow(cameras, manager)
        window.show()
    except Exception as e:
        error_msg = f"Failed to initialize application:\n{str(e)}\n\n{traceback.format_exc()}"
        logger.critical("Startup error", exc_info=True)
        QMessageBox.critical(None, UIStrings.ERROR_STARTUP, error_msg)
        manager.shutdown()
        return 1

    logger.info("Starting Qt event loop")
    exit_code = app.exec()

    if window.shutdown_clean is None:
        window.shutdown_clean = manager.shutdown()
    if not window.shutdown_clean:
        # Decoder threads may be stuck in the kernel; do not wait on them
        logging.shutdown()
        os._exit(exit_code)

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
