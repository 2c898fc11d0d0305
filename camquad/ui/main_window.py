"""
Main application window
"""

import logging

from PyQt6.QtGui import QAction  # type: ignore
from PyQt6.QtWidgets import QGridLayout, QMainWindow, QWidget  # type: ignore

from camquad.constants import StreamConstants, UIConstants
from camquad.controllers.session_supervisor import StreamManager
from camquad.exceptions import StreamError
from camquad.models.camera import Camera
from camquad.ui.camera_tile import CameraTile
from camquad.ui_strings import UIStrings

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """2x2 grid of camera tiles"""

    def __init__(self, cameras: list[Camera], manager: StreamManager):
        super().__init__()

        self.manager = manager
        self.tiles: list[CameraTile] = []
        # None until closeEvent ran; False if decoders outlived the timeout
        self.shutdown_clean: bool | None = None

        self.init_ui()
        self.load_cameras(cameras)

    def init_ui(self) -> None:
        """Initialize user interface"""
        self.setWindowTitle(f"{UIStrings.APP_NAME} — {UIConstants.WINDOW_TITLE_SUFFIX}")
        self.resize(UIConstants.WINDOW_DEFAULT_WIDTH, UIConstants.WINDOW_DEFAULT_HEIGHT)
        logger.info("Initializing main window UI")

        file_menu = self.menuBar().addMenu("&File")
        exit_action = QAction("E&xit", self)
        exit_action.setShortcut("Ctrl+Q")
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        self.grid = QGridLayout(central_widget)
        self.grid.setContentsMargins(4, 4, 4, 4)
        self.grid.setSpacing(4)

    def load_cameras(self, cameras: list[Camera]) -> None:
        """Attach each camera to a stream slot and fill the grid"""
        slots = UIConstants.GRID_ROWS * UIConstants.GRID_COLUMNS
        for position in range(slots):
            camera = cameras[position] if position < len(cameras) else None
            tile = self._create_tile(camera)
            row, column = divmod(position, UIConstants.GRID_COLUMNS)
            self.grid.addWidget(tile, row, column)
            self.tiles.append(tile)

        if len(cameras) > slots:
            logger.warning(f"{len(cameras) - slots} camera(s) ignored, grid holds {slots}")

    def _create_tile(self, camera: Camera | None) -> CameraTile:
        if camera is None:
            return CameraTile()
        try:
            index = self.manager.attach(camera)
        except StreamError as e:
            logger.warning(f"Cannot attach {camera}: {e}")
            return CameraTile()
        logger.info(f"Slot {index}: {camera}")
        return CameraTile(camera, self.manager, index)

    def closeEvent(self, event) -> None:
        """Handle window close event"""
        logger.info("Closing application and stopping streams...")

        for tile in self.tiles:
            tile.disconnect_channel()

        self.shutdown_clean = self.manager.shutdown(StreamConstants.SHUTDOWN_TIMEOUT_S)
        if not self.shutdown_clean:
            logger.warning("Stream sessions did not stop in time, forcing exit")

        logger.info("Cleanup complete, exiting...")
        event.accept()
