"""Main visualizer window: toolbar, canvas, edit-request and scan controls."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError
from PySide6.QtCore import QObject, QRunnable, Qt, QThreadPool, Signal
from PySide6.QtWidgets import (
    QButtonGroup,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSlider,
    QSpinBox,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from ..config import VisualizerConfig
from ..core.gestures import InteractionMode
from ..core.imaging import ImageLoadError, decode_image, encode_png
from ..core.mask import Tool
from ..session import ImageEditor, ImageScanner, VisualizerSession, VisualizerTab
from .canvas import VisualizerCanvas

logger = logging.getLogger(__name__)

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.webp)"


class _TaskSignals(QObject):
    finished = Signal(object)
    failed = Signal(str)


class _ServiceTask(QRunnable):
    """Runs a call to an editing/scanning service off the UI thread."""

    def __init__(self, call: Callable[[], object], label: str) -> None:
        super().__init__()
        self.call = call
        self.label = label
        self.signals = _TaskSignals()
        self.setAutoDelete(False)

    def run(self) -> None:
        try:
            value = self.call()
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s request failed", self.label)
            self.signals.failed.emit(str(exc))
            return
        self.signals.finished.emit(value)


class VisualizerWindow(QMainWindow):
    """Desktop host for one visualizer session."""

    def __init__(
        self,
        config: Optional[VisualizerConfig] = None,
        editor: Optional[ImageEditor] = None,
        scanner: Optional[ImageScanner] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.session = VisualizerSession(config)
        self.editor = editor
        self.scanner = scanner
        self._busy = False
        self._task_generation = 0
        self._pool = QThreadPool.globalInstance()
        self._tasks: list[_ServiceTask] = []

        self.setWindowTitle("ProKonstruksi Visualizer")
        self.resize(960, 760)

        self._setup_ui()
        self._connect_signals()
        self._sync_controls()

    # --------------------------------------------------------------------- UI
    def _setup_ui(self) -> None:
        central = QWidget(self)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(10, 10, 10, 10)
        layout.setSpacing(6)

        layout.addWidget(self._build_toolbar(central))

        self.canvas = VisualizerCanvas(self.session, central)
        self.session.schedule_retry = self.canvas.schedule_retry
        layout.addWidget(self.canvas, 1)

        self.request_bar = self._build_request_bar(central)
        layout.addWidget(self.request_bar)
        self.scan_panel = self._build_scan_panel(central)
        layout.addWidget(self.scan_panel)

        self.status_label = QLabel("Open a photo to begin.", central)
        self.status_label.setObjectName("visualizerStatus")
        layout.addWidget(self.status_label)

        self.setCentralWidget(central)

    def _build_toolbar(self, parent: QWidget) -> QWidget:
        toolbar = QWidget(parent)
        toolbar_layout = QHBoxLayout(toolbar)
        toolbar_layout.setContentsMargins(0, 0, 0, 0)
        toolbar_layout.setSpacing(8)

        self.open_button = self._make_button("Open", "Open a photo", toolbar)
        toolbar_layout.addWidget(self.open_button)

        self.visual_tab_button = self._make_button("Visual", "Paint a mask and describe the edit", toolbar, checkable=True)
        self.scan_tab_button = self._make_button("Scan", "Analyse wall and floor materials (pan/zoom only)", toolbar, checkable=True)
        self.visual_tab_button.setChecked(True)
        self.tab_group = QButtonGroup(toolbar)
        self.tab_group.setExclusive(True)
        self.tab_group.addButton(self.visual_tab_button)
        self.tab_group.addButton(self.scan_tab_button)
        toolbar_layout.addWidget(self.visual_tab_button)
        toolbar_layout.addWidget(self.scan_tab_button)

        toolbar_layout.addSpacing(12)

        self.move_button = self._make_button("Move", "Pan / zoom instead of painting", toolbar, checkable=True)
        toolbar_layout.addWidget(self.move_button)

        self.brush_button = self._make_button("Brush", "Mark the area to edit", toolbar, checkable=True)
        self.eraser_button = self._make_button("Eraser", "Remove marked area", toolbar, checkable=True)
        self.tool_group = QButtonGroup(toolbar)
        self.tool_group.setExclusive(True)
        self.tool_group.addButton(self.brush_button)
        self.tool_group.addButton(self.eraser_button)
        toolbar_layout.addWidget(self.brush_button)
        toolbar_layout.addWidget(self.eraser_button)

        toolbar_layout.addWidget(QLabel("Brush Size:", toolbar))
        brush = self.session.config.brush
        self.size_slider = QSlider(Qt.Orientation.Horizontal, toolbar)
        self.size_slider.setMinimum(brush.min_size)
        self.size_slider.setMaximum(brush.max_size)
        self.size_slider.setValue(self.session.painter.brush_size)
        self.size_slider.setToolTip("Adjust brush/eraser width")
        toolbar_layout.addWidget(self.size_slider, 1)

        self.size_spin = QSpinBox(toolbar)
        self.size_spin.setMinimum(brush.min_size)
        self.size_spin.setMaximum(brush.max_size)
        self.size_spin.setValue(self.session.painter.brush_size)
        toolbar_layout.addWidget(self.size_spin)

        toolbar_layout.addSpacing(12)

        self.zoom_out_button = self._make_button("-", "Zoom out", toolbar)
        self.zoom_label = QLabel("100%", toolbar)
        self.zoom_label.setFixedWidth(48)
        self.zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.zoom_in_button = self._make_button("+", "Zoom in", toolbar)
        toolbar_layout.addWidget(self.zoom_out_button)
        toolbar_layout.addWidget(self.zoom_label)
        toolbar_layout.addWidget(self.zoom_in_button)

        self.clear_button = self._make_button("Clear", "Clear the painted mask", toolbar)
        toolbar_layout.addWidget(self.clear_button)

        toolbar_layout.addStretch(0)
        return toolbar

    def _build_request_bar(self, parent: QWidget) -> QWidget:
        bar = QWidget(parent)
        bar_layout = QHBoxLayout(bar)
        bar_layout.setContentsMargins(0, 0, 0, 0)
        bar_layout.setSpacing(8)

        self.prompt_edit = QLineEdit(bar)
        self.prompt_edit.setPlaceholderText("Describe the change, e.g. 'replace the floor with oak parquet'")
        bar_layout.addWidget(self.prompt_edit, 1)

        self.generate_button = QPushButton("Generate", bar)
        self.continue_button = QPushButton("Continue Editing", bar)
        self.reset_button = QPushButton("Reset", bar)
        self.save_button = QPushButton("Save…", bar)
        for button in (self.generate_button, self.continue_button, self.reset_button, self.save_button):
            bar_layout.addWidget(button)
        return bar

    def _build_scan_panel(self, parent: QWidget) -> QGroupBox:
        panel = QGroupBox("Material Scan", parent)
        panel_layout = QVBoxLayout(panel)
        panel_layout.setContentsMargins(8, 8, 8, 8)

        buttons = QHBoxLayout()
        self.scan_button = QPushButton("Analyse Materials", panel)
        self.clear_scan_button = QPushButton("Clear", panel)
        buttons.addWidget(self.scan_button)
        buttons.addWidget(self.clear_scan_button)
        buttons.addStretch(1)
        panel_layout.addLayout(buttons)

        form = QFormLayout()
        self.material_label = QLabel("-", panel)
        self.condition_label = QLabel("-", panel)
        self.suggestion_label = QLabel("-", panel)
        self.work_item_label = QLabel("-", panel)
        for label in (self.material_label, self.condition_label, self.suggestion_label, self.work_item_label):
            label.setWordWrap(True)
            label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        form.addRow("Material:", self.material_label)
        form.addRow("Condition:", self.condition_label)
        form.addRow("Suggestion:", self.suggestion_label)
        form.addRow("Work item:", self.work_item_label)
        panel_layout.addLayout(form)
        return panel

    @staticmethod
    def _make_button(text: str, tooltip: str, parent: QWidget, checkable: bool = False) -> QToolButton:
        button = QToolButton(parent)
        button.setText(text)
        button.setToolTip(tooltip)
        button.setCheckable(checkable)
        button.setMinimumHeight(28)
        button.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        return button


    # ---------------------------------------------------------------- Signals
    def _connect_signals(self) -> None:
        self.open_button.clicked.connect(self._open_image_dialog)
        self.visual_tab_button.toggled.connect(
            lambda checked: checked and self._set_tab(VisualizerTab.VISUALIZER)
        )
        self.scan_tab_button.toggled.connect(
            lambda checked: checked and self._set_tab(VisualizerTab.SCANNER)
        )
        self.move_button.toggled.connect(self._on_move_toggled)
        self.brush_button.toggled.connect(lambda checked: checked and self._set_tool(Tool.BRUSH))
        self.eraser_button.toggled.connect(lambda checked: checked and self._set_tool(Tool.ERASER))
        self.size_slider.valueChanged.connect(self._on_brush_size_changed)
        self.size_spin.valueChanged.connect(self.size_slider.setValue)
        self.zoom_in_button.clicked.connect(lambda: self._zoom(self.session.zoom_in))
        self.zoom_out_button.clicked.connect(lambda: self._zoom(self.session.zoom_out))
        self.clear_button.clicked.connect(self._clear_mask)
        self.generate_button.clicked.connect(self._generate)
        self.continue_button.clicked.connect(self._continue_edit)
        self.reset_button.clicked.connect(self._reset)
        self.save_button.clicked.connect(self._save_dialog)
        self.scan_button.clicked.connect(self._scan)
        self.clear_scan_button.clicked.connect(self._clear_scan)
        self.canvas.view_changed.connect(self._on_view_changed)
        self.canvas.mask_changed.connect(self._sync_controls)

    # ---------------------------------------------------------------- Actions
    def _set_status(self, message: str) -> None:
        self.status_label.setText(message)

    def load_image(self, path: Path | str) -> bool:
        if self._busy:
            return False
        try:
            self.session.load_image_file(path)
        except ImageLoadError as exc:
            logger.exception("Failed to load image: %s", exc)
            QMessageBox.critical(self, "Open", str(exc))
            return False
        width, height = self.session.image_size or (0, 0)
        self.prompt_edit.clear()
        self._set_status(f"Loaded {width}×{height} photo. Paint over the area to change.")
        self.canvas.refresh()
        self._sync_controls()
        return True

    def _open_image_dialog(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(self, "Open Photo", "", IMAGE_FILTER)
        if file_path:
            self.load_image(Path(file_path))

    def _set_tab(self, tab: VisualizerTab) -> None:
        self.session.set_tab(tab)
        self.canvas.refresh()
        self._sync_controls()

    def _on_move_toggled(self, checked: bool) -> None:
        self.session.set_mode(InteractionMode.MOVE if checked else InteractionMode.DRAW)
        self._sync_controls()

    def _set_tool(self, tool: Tool) -> None:
        self.session.painter.tool = tool
        if self.move_button.isChecked():
            self.move_button.setChecked(False)

    def _on_brush_size_changed(self, value: int) -> None:
        self.session.painter.brush_size = value
        if self.size_spin.value() != value:
            self.size_spin.blockSignals(True)
            self.size_spin.setValue(value)
            self.size_spin.blockSignals(False)
        self.canvas.update()

    def _zoom(self, action) -> None:
        action()
        self.canvas.refresh()

    def _on_view_changed(self, scale: float) -> None:
        self.zoom_label.setText(f"{self.session.viewport.zoom_percent}%")

    def _clear_mask(self) -> None:
        self.session.clear_mask()
        self.canvas.update()
        self._sync_controls()

    def _start_task(self, task: _ServiceTask, on_finished: Callable[[object], None], status: str) -> None:
        task.signals.finished.connect(on_finished)
        task.signals.failed.connect(self._on_task_failed)
        self._tasks.append(task)
        self._task_generation = self.session.generation
        self._busy = True
        self._set_status(status)
        self._sync_controls()
        self._pool.start(task)

    def _finish_task(self) -> bool:
        """Mark the running task done; ``False`` when its photo has since been replaced."""
        self._busy = False
        self._tasks.clear()
        return self._task_generation == self.session.generation

    def _generate(self) -> None:
        if self.editor is None or self._busy:
            return
        try:
            request = self.session.build_edit_request(self.prompt_edit.text())
        except ValueError as exc:
            self._set_status(str(exc))
            return
        editor = self.editor
        self._start_task(_ServiceTask(lambda: editor.edit(request), "Image edit"), self._on_edit_finished, "Generating…")

    def _on_edit_finished(self, data: object) -> None:
        current = self._finish_task()
        try:
            image = decode_image(data)  # type: ignore[arg-type]
        except ImageLoadError as exc:
            logger.exception("Editor returned an unreadable image")
            self._on_task_failed(str(exc))
            return
        if self.session.apply_result(image, self._task_generation):
            self._set_status("Result ready.")
        elif current:
            self._set_status("Result ready; finishing current stroke.")
        else:
            self._set_status("Discarded a result generated for a previous photo.")
        self.canvas.refresh()
        self._sync_controls()

    def _scan(self) -> None:
        if self.scanner is None or self._busy:
            return
        image_b64 = self.session.source_b64()
        if image_b64 is None:
            return
        scanner = self.scanner
        self._start_task(
            _ServiceTask(lambda: scanner.scan(image_b64), "Material scan"),
            self._on_scan_finished,
            "Analysing materials…",
        )

    def _on_scan_finished(self, result: object) -> None:
        self._finish_task()
        try:
            applied = self.session.apply_scan_result(result, self._task_generation)  # type: ignore[arg-type]
        except ValidationError as exc:
            logger.error("Scanner returned an invalid result: %s", exc)
            self._on_task_failed("Scanner returned an invalid result")
            return
        self._set_status("Scan complete." if applied else "Discarded a scan of a previous photo.")
        self._sync_controls()

    def _clear_scan(self) -> None:
        self.session.clear_scan()
        self._sync_controls()

    def _on_task_failed(self, message: str) -> None:
        self._finish_task()
        QMessageBox.critical(self, "Request failed", f"Failed: {message}")
        self._set_status("Request failed.")
        self._sync_controls()

    def _continue_edit(self) -> None:
        if self.session.continue_edit():
            self.prompt_edit.clear()
            self.canvas.refresh()
            self._set_status("Result promoted to the working photo.")
        self._sync_controls()

    def _reset(self) -> None:
        self.session.reset()
        self.canvas.refresh()
        self._set_status("Reset.")
        self._sync_controls()

    def _save_dialog(self) -> None:
        image = self.session.result if self.session.result is not None else self.session.source
        if image is None:
            return
        file_path, _ = QFileDialog.getSaveFileName(self, "Save Image", "prokonstruksi.png", "PNG (*.png)")
        if not file_path:
            return
        try:
            Path(file_path).write_bytes(encode_png(image))
        except (OSError, ValueError) as exc:
            logger.error("Failed to save image to %s: %s", file_path, exc)
            QMessageBox.critical(self, "Save failed", f"Could not write image to {file_path}")
            return
        self._set_status(f"Saved {file_path}")

    def _update_scan_panel(self) -> None:
        result = self.session.scan_result
        self.material_label.setText(result.detected_material if result else "-")
        self.condition_label.setText(result.condition if result else "-")
        self.suggestion_label.setText(result.suggestion if result else "-")
        self.work_item_label.setText(result.ahsp_suggestion if result else "-")

    def _sync_controls(self) -> None:
        session = self.session
        scanning = session.tab is VisualizerTab.SCANNER
        has_image = session.has_image
        has_result = session.result is not None

        self.open_button.setEnabled(not self._busy)

        self.move_button.setEnabled(not scanning and not has_result)
        self.move_button.blockSignals(True)
        self.move_button.setChecked(session.gestures.effective_mode is InteractionMode.MOVE)
        self.move_button.blockSignals(False)

        drawing = not scanning and not has_result
        for widget in (self.brush_button, self.eraser_button, self.size_slider, self.size_spin):
            widget.setEnabled(drawing)
        self.brush_button.blockSignals(True)
        self.eraser_button.blockSignals(True)
        self.brush_button.setChecked(session.painter.tool is Tool.BRUSH)
        self.eraser_button.setChecked(session.painter.tool is Tool.ERASER)
        self.brush_button.blockSignals(False)
        self.eraser_button.blockSignals(False)

        self.clear_button.setEnabled(drawing and session.painter.has_paint)
        self.generate_button.setEnabled(
            self.editor is not None and has_image and not scanning and not self._busy
        )
        self.continue_button.setEnabled(has_result and not self._busy)
        self.reset_button.setEnabled(has_image)
        self.save_button.setEnabled(has_image)
        self.prompt_edit.setEnabled(has_image and not scanning)

        self.request_bar.setVisible(not scanning)
        self.scan_panel.setVisible(scanning)
        self.scan_button.setEnabled(self.scanner is not None and has_image and not self._busy)
        self.clear_scan_button.setEnabled(session.scan_result is not None)
        self._update_scan_panel()
