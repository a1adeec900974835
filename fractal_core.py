"""
Pixel grid used by the fractal tree generator.
Holds one optional Cell per position and rasterizes lines into itself.
Writes outside the grid are clipped silently, reads outside it raise.
"""
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#000000"


@dataclass(frozen=True)
class Cell:
    color: str
    thickness: int


class GridBoundsError(IndexError):
    pass


class PixelGrid:
    def __init__(self, width, height):
        errors = []
        if not isinstance(width, int) or width < 1:
            errors.append(f"width {width!r} must be a positive integer")
        if not isinstance(height, int) or height < 1:
            errors.append(f"height {height!r} must be a positive integer")
        if errors:
            raise ValueError("; ".join(errors))
        self._width = width
        self._height = height
        # column major: self._map[x][y]
        self._map = [[None] * height for _ in range(width)]

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    def in_bounds(self, x, y):
        return 0 <= x < self._width and 0 <= y < self._height

    def set_cell(self, x, y, thickness, color=DEFAULT_COLOR):
        if self.in_bounds(x, y):
            self._map[x][y] = Cell(color, thickness)

    def get_cell(self, x, y):
        """Return the Cell at (x, y), or None when nothing was painted there.

        Raises GridBoundsError when either coordinate lies outside the grid.
        """
        if not 0 <= x < self._width:
            raise GridBoundsError("x is out of bounds")
        if not 0 <= y < self._height:
            raise GridBoundsError("y is out of bounds")
        return self._map[x][y]

    def draw_line(self, x0, y0, x1, y1, thickness, color=DEFAULT_COLOR):
        """Bresenham's line algorithm.

        Paints every cell on the 8-connected path from (x0, y0) to (x1, y1),
        both endpoints included, max(|dx|, |dy|) + 1 cells in total.
        """
        dx = abs(x1 - x0)
        sx = 1 if x0 < x1 else -1
        dy = abs(y1 - y0)
        sy = 1 if y0 < y1 else -1
        err = (dx if dx > dy else -dy) / 2

        x, y = x0, y0
        while True:
            self.set_cell(x, y, thickness, color)
            if x == x1 and y == y1:
                break
            e2 = err
            if e2 > -dx:
                err -= dy
                x += sx
            if e2 < dy:
                err += dx
                y += sy

    def painted_cells(self):
        for x, column in enumerate(self._map):
            for y, cell in enumerate(column):
                if cell is not None:
                    yield x, y, cell

    def render(self, paint):
        """Call paint(x, y, width, height, color) for every painted cell.

        Each cell becomes a filled square whose side is the cell thickness.
        Cells are visited column by column (x outer, y inner).
        """
        count = 0
        for x, y, cell in self.painted_cells():
            paint(x, y, cell.thickness, cell.thickness, cell.color)
            count += 1
        logger.debug("rendered %d cells from %dx%d grid", count, self._width, self._height)

    def __len__(self):
        return sum(1 for _ in self.painted_cells())
