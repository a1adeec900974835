import os

import pytest

pytest.importorskip("PyQt6.QtWidgets")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

import fractal_qt  # noqa: E402
from fractal_core import PixelGrid  # noqa: E402
from fractal_qt import FractalViewer, pil_to_qimage  # noqa: E402
from fractal_worker import FractalTreeParams, render_grid_to_image  # noqa: E402


class FakeSignal:
    def __init__(self):
        self.slots = []

    def connect(self, slot):
        self.slots.append(slot)

    def emit(self, *args):
        for slot in self.slots:
            slot(*args)


class FakeRenderThread:
    started = []

    def __init__(self, params, parent=None):
        self.params = params
        self.finished = FakeSignal()
        self.error = FakeSignal()

    def start(self):
        FakeRenderThread.started.append(self)

    def wait(self):
        return True


@pytest.fixture
def qapp():
    return QApplication.instance() or QApplication([])


@pytest.fixture
def fake_thread(monkeypatch):
    FakeRenderThread.started = []
    monkeypatch.setattr(fractal_qt, "RenderThread", FakeRenderThread)
    return FakeRenderThread


def test_pil_to_qimage_keeps_size_and_color():
    grid = PixelGrid(12, 9)
    grid.set_cell(2, 3, 1, "#ff0000")
    qimage = pil_to_qimage(render_grid_to_image(grid))
    assert (qimage.width(), qimage.height()) == (12, 9)
    color = qimage.pixelColor(2, 3)
    assert (color.red(), color.green(), color.blue(), color.alpha()) == (255, 0, 0, 255)


def test_regenerate_during_render_is_queued(qapp, fake_thread):
    viewer = FractalViewer(FractalTreeParams(depth=3, width=60, height=40, seed=1))
    assert len(fake_thread.started) == 1

    viewer.regenerate()
    # still busy with the first render
    assert len(fake_thread.started) == 1
    assert viewer.pending

    image = render_grid_to_image(PixelGrid(60, 40))
    fake_thread.started[0].finished.emit(image)
    assert viewer.image is image
    assert len(fake_thread.started) == 2
    assert fake_thread.started[1].params is viewer.params
    assert not viewer.pending

    fake_thread.started[1].finished.emit(image)
    assert not viewer.rendering
    assert len(fake_thread.started) == 2
    viewer.deleteLater()
