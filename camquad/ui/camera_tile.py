"""
One grid tile: live video plus the HQ/LQ toggle
"""

import logging

from PyQt6.QtCore import QElapsedTimer, Qt, QTimer, pyqtSignal, pyqtSlot  # type: ignore
from PyQt6.QtGui import QColor, QImage, QPixmap  # type: ignore
from PyQt6.QtWidgets import QLabel, QPushButton, QSizePolicy, QVBoxLayout, QWidget  # type: ignore

from camquad.constants import UIConstants
from camquad.controllers.session_supervisor import StreamManager
from camquad.exceptions import StreamError
from camquad.models.camera import Camera, Quality
from camquad.ui_strings import UIStrings

logger = logging.getLogger(__name__)


def placeholder_pixmap(width: int, height: int) -> QPixmap:
    """Uniform grey image shown until the first frame arrives"""
    pixmap = QPixmap(width, height)
    grey = UIConstants.TILE_PLACEHOLDER_GREY
    pixmap.fill(QColor(grey, grey, grey))
    return pixmap


class CameraTile(QWidget):
    """Video tile for one camera slot (or an empty slot when camera is None)"""

    # Emitted from the decoder thread; Qt queues it onto the GUI thread
    frame_ready = pyqtSignal()

    def __init__(
        self,
        camera: Camera | None = None,
        manager: StreamManager | None = None,
        index: int = -1,
    ):
        super().__init__()
        self.camera = camera
        self.manager = manager
        self.index = index
        self.quality = Quality.LOW
        self.channel = manager.channel(index) if camera is not None and manager is not None else None
        self._frame_timer = QElapsedTimer()
        self._redraw_pending = False
        self.frames_shown = 0

        self.init_ui()

        if self.channel is not None:
            self.frame_ready.connect(self.on_frame_ready, Qt.ConnectionType.QueuedConnection)
            self.channel.subscribe(self._on_frame_offered)

    def init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(2)

        self.video_label = QLabel()
        self.video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.video_label.setSizePolicy(QSizePolicy.Policy.Ignored, QSizePolicy.Policy.Ignored)
        self.video_label.setMinimumSize(160, 90)
        self.video_label.setPixmap(
            placeholder_pixmap(
                UIConstants.TILE_PLACEHOLDER_WIDTH, UIConstants.TILE_PLACEHOLDER_HEIGHT
            )
        )
        layout.addWidget(self.video_label, stretch=1)

        self.quality_button = QPushButton()
        self.quality_button.setFixedWidth(48)
        if self.camera is None:
            self.quality_button.setText(UIStrings.BTN_QUALITY_LOW)
            self.quality_button.setEnabled(False)
            self.video_label.setToolTip(UIStrings.STATUS_NO_CAMERA)
        else:
            self.video_label.setToolTip(str(self.camera))
            self.quality_button.clicked.connect(self.on_quality_clicked)
            self._update_quality_button()
        layout.addWidget(self.quality_button, alignment=Qt.AlignmentFlag.AlignLeft)

    def _on_frame_offered(self, _frame) -> None:
        """Channel subscriber; runs on the decoder thread"""
        self.frame_ready.emit()

    @pyqtSlot()
    def on_frame_ready(self) -> None:
        """Show the newest frame, throttled to ~30 FPS"""
        if self.channel is None:
            return
        if self._frame_timer.isValid():
            remaining = UIConstants.FRAME_MIN_INTERVAL_MS - self._frame_timer.elapsed()
            if remaining > 0:
                # Too soon; redraw once the interval is up so the last frame is not lost
                if not self._redraw_pending:
                    self._redraw_pending = True
                    QTimer.singleShot(remaining, self._deferred_redraw)
                return

        image = self.channel.take()
        if image is None:
            return
        self._frame_timer.restart()
        self.show_image(image)

    @pyqtSlot()
    def _deferred_redraw(self) -> None:
        self._redraw_pending = False
        self.on_frame_ready()

    def show_image(self, image: QImage) -> None:
        pixmap = QPixmap.fromImage(image)
        scaled = pixmap.scaled(
            self.video_label.width(),
            self.video_label.height(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.FastTransformation,
        )
        self.video_label.setPixmap(scaled)
        self.frames_shown += 1

    @pyqtSlot()
    def on_quality_clicked(self) -> None:
        try:
            self.quality = self.manager.toggle_quality(self.index)
        except StreamError as e:
            logger.warning(f"Quality toggle failed for slot {self.index}: {e}")
            return
        self._update_quality_button()

    def _update_quality_button(self) -> None:
        if self.quality is Quality.HIGH:
            self.quality_button.setText(UIStrings.BTN_QUALITY_HIGH)
            self.quality_button.setToolTip(UIStrings.TOOLTIP_QUALITY_HIGH)
        else:
            self.quality_button.setText(UIStrings.BTN_QUALITY_LOW)
            self.quality_button.setToolTip(UIStrings.TOOLTIP_QUALITY_LOW)

    def disconnect_channel(self) -> None:
        if self.channel is not None:
            self.channel.unsubscribe(self._on_frame_offered)
