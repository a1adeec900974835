# PyQt6 viewer for the fractal tree renderer.
# Shows the rendered tree in a window; File menu offers regenerate, save and close.
# Generation runs on a QThread so the window stays responsive.

import sys
import logging
import random

from PyQt6.QtWidgets import (
    QApplication, QWidget, QLabel, QVBoxLayout, QMenuBar, QFileDialog, QMessageBox,
)
from PyQt6.QtGui import QPixmap, QImage, QAction
from PyQt6.QtCore import Qt, QThread, pyqtSignal

from PIL.ImageQt import ImageQt

from fractal_worker import FractalTreeParams, generate_fractal_image

logger = logging.getLogger(__name__)


def pil_to_qimage(pil_image):
    return QImage(ImageQt(pil_image.convert('RGBA')).copy())


class RenderThread(QThread):
    finished = pyqtSignal(object)  # PIL.Image
    error = pyqtSignal(str)

    def __init__(self, params, parent=None):
        super().__init__(parent)
        self.params = params

    def run(self):
        try:
            img = generate_fractal_image(self.params)
            self.finished.emit(img)
        except Exception as e:
            logger.exception("render failed")
            self.error.emit(str(e))


class FractalViewer(QWidget):
    def __init__(self, params):
        super().__init__()
        self.params = params
        self.image = None
        self.thread = None
        self.rendering = False
        self.pending = False
        self.setWindowTitle("Fractal Tree")
        self.resize(params.width, params.height)

        layout = QVBoxLayout(self)
        menubar = QMenuBar(self)
        layout.setMenuBar(menubar)
        file_menu = menubar.addMenu('File')

        regen_action = QAction('Regenerate', self)
        regen_action.setShortcut('Ctrl+R')
        regen_action.triggered.connect(self.regenerate)
        file_menu.addAction(regen_action)

        save_action = QAction('Save As...', self)
        save_action.setShortcut('Ctrl+S')
        save_action.triggered.connect(self.save_as)
        file_menu.addAction(save_action)

        close_action = QAction('Close', self)
        close_action.setShortcut('Ctrl+Q')
        close_action.triggered.connect(self.close)
        file_menu.addAction(close_action)

        self.preview = QLabel("Rendering...")
        self.preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.preview)

        self.start_render()

    def start_render(self):
        if self.rendering:
            # picked up again once the running render reports back
            self.pending = True
            return
        if self.thread is not None:
            self.thread.wait()
        self.rendering = True
        self.pending = False
        self.preview.setText("Rendering...")
        self.thread = RenderThread(self.params, self)
        self.thread.finished.connect(self._on_render_ready)
        self.thread.error.connect(self._on_render_error)
        self.thread.start()

    def _render_done(self):
        self.rendering = False
        if self.pending:
            self.start_render()

    def regenerate(self):
        data = self.params.to_dict()
        data['seed'] = random.randint(1, 9999)
        self.params = FractalTreeParams.from_dict(data)
        self.start_render()

    def save_as(self):
        if self.image is None:
            return
        filename, _ = QFileDialog.getSaveFileName(self, 'Save Image', 'fractal.png', 'PNG Images (*.png)')
        if filename:
            self.image.save(filename, format='PNG')
            logger.info("saved %s", filename)

    def _on_render_ready(self, pil_image):
        self.image = pil_image
        pix = QPixmap.fromImage(pil_to_qimage(pil_image))
        self.preview.setPixmap(pix)
        self._render_done()

    def _on_render_error(self, msg):
        self.preview.setText("Render failed")
        QMessageBox.critical(self, 'Render Error', f'Render failed:\n{msg}')
        self._render_done()

    def closeEvent(self, event):
        if self.thread is not None:
            self.thread.wait()
        super().closeEvent(event)


def main(params=None):
    if params is None:
        params = FractalTreeParams()
    app = QApplication.instance() or QApplication(sys.argv)
    w = FractalViewer(params)
    w.show()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
