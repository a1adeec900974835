"""
Fractal tree generation and rendering.
FractalTree walks the binary branch structure and rasterizes every branch
into a PixelGrid; the render helpers turn a finished grid into a Pillow
image, a PNG data URL or a PNG file under output/.
Generation accepts an optional progress_callback(fraction) and
cancel_check() so a UI can report progress and stop long runs.
"""
import base64
import io
import logging
import math
import os
import random
import re
from dataclasses import dataclass, asdict, fields
from datetime import datetime, timezone

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from fractal_core import PixelGrid, DEFAULT_COLOR

logger = logging.getLogger(__name__)

DEG2RAD = math.pi / 180.0
GRID_WIDTH = 900
GRID_HEIGHT = 700
MAX_GRID = 4096
MAX_DEPTH = 15
TRANSPARENT = "transparent"


class CancelledError(Exception):
    pass


HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")
INT_FIELDS = ('depth', 'width', 'height', 'branch_unit', 'spread_min', 'spread_max', 'leaf_depth')


def _valid_color(value):
    if value == TRANSPARENT:
        return True
    return isinstance(value, str) and HEX_COLOR.match(value) is not None


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class FractalTreeParams:
    depth: int = 10
    width: int = GRID_WIDTH
    height: int = GRID_HEIGHT
    seed: int = None
    branch_unit: int = 10
    spread_min: int = 20
    spread_max: int = 30
    leaf_depth: int = 3
    background: str = TRANSPARENT
    signature: str = None

    def __post_init__(self):
        errors = []
        for name in INT_FIELDS:
            value = getattr(self, name)
            if not _is_int(value):
                errors.append(f"{name} {value!r} must be an integer")
        if self.seed is not None and not _is_int(self.seed):
            errors.append(f"seed {self.seed!r} must be an integer")
        if self.signature is not None and not isinstance(self.signature, str):
            errors.append(f"signature {self.signature!r} must be a string")
        if errors:
            # range checks below assume numbers
            raise ValueError("; ".join(errors))

        if not (1 <= self.depth <= MAX_DEPTH):
            errors.append(f"depth {self.depth} out of range [1, {MAX_DEPTH}]")
        if not (1 <= self.width <= MAX_GRID):
            errors.append(f"width {self.width} out of range [1, {MAX_GRID}]")
        if not (1 <= self.height <= MAX_GRID):
            errors.append(f"height {self.height} out of range [1, {MAX_GRID}]")
        if self.seed is not None and not (1 <= self.seed <= 9999):
            errors.append(f"seed {self.seed} out of range [1, 9999]")
        if not (1 <= self.branch_unit <= 50):
            errors.append(f"branch_unit {self.branch_unit} out of range [1, 50]")
        if not (0 <= self.spread_min <= 90):
            errors.append(f"spread_min {self.spread_min} out of range [0, 90]")
        if not (0 <= self.spread_max <= 90):
            errors.append(f"spread_max {self.spread_max} out of range [0, 90]")
        if self.spread_min > self.spread_max:
            errors.append(f"spread_min {self.spread_min} greater than spread_max {self.spread_max}")
        if not (0 <= self.leaf_depth <= MAX_DEPTH):
            errors.append(f"leaf_depth {self.leaf_depth} out of range [0, {MAX_DEPTH}]")
        if not _valid_color(self.background):
            errors.append(f"background {self.background!r} is not #RRGGBB, #RRGGBBAA or '{TRANSPARENT}'")
        if errors:
            raise ValueError("; ".join(errors))

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self):
        return asdict(self)


def fractal_preset(seed=None):
    if seed is None:
        seed = random.randint(1, 9999)
    return {
        'seed': int(seed),
        'depth': 10,
        'width': GRID_WIDTH,
        'height': GRID_HEIGHT,
        'branch_unit': 10,
        'spread_min': 20,
        'spread_max': 30,
        'leaf_depth': 3,
        'background': TRANSPARENT,
        'signature': None,
    }


class FractalTree:
    """Binary fractal tree drawn into a PixelGrid.

    The whole tree is generated as soon as the object is built. Branches at
    depth >= leaf_depth are black wood; shallower ones are leaves and each
    gets its own random color. Every branch is depth * branch_unit long and
    depth cells thick, and forks into two children whose angles are jittered
    by independent random offsets drawn from spread.
    """

    def __init__(self, depth, grid, rng=None, origin=None, angle=-90, branch_unit=10,
                 spread=(20, 30), leaf_depth=3, progress_callback=None, cancel_check=None):
        if not isinstance(depth, int) or depth < 0:
            raise ValueError(f"depth {depth!r} must be a non-negative integer")
        self.grid = grid
        self.rng = rng if rng is not None else random.Random()
        self.branch_unit = branch_unit
        self.spread = spread
        self.leaf_depth = leaf_depth
        self.progress_callback = progress_callback
        self.cancel_check = cancel_check
        self.branch_count = 0
        self._total = 2 ** depth - 1
        if origin is None:
            origin = (grid.width // 2, grid.height)
        self.origin = origin
        self.draw_tree(origin[0], origin[1], angle, depth)

    def random_angle(self):
        return self.rng.randint(self.spread[0], self.spread[1])

    def random_color(self):
        return f"#{self.rng.randrange(0x1000000):06x}"

    def draw_tree(self, x, y, angle, depth):
        logger.debug("drawing tree at (%s, %s) angle=%s depth=%d", x, y, angle, depth)
        self.draw_branch(x, y, angle, depth)
        logger.debug("tree finished with %d branches", self.branch_count)

    def draw_branch(self, x1, y1, angle, depth):
        if depth <= 0:
            return
        if self.cancel_check and self.cancel_check():
            raise CancelledError()

        length = depth * self.branch_unit
        x2 = x1 + math.cos(angle * DEG2RAD) * length
        y2 = y1 + math.sin(angle * DEG2RAD) * length
        color = DEFAULT_COLOR if depth >= self.leaf_depth else self.random_color()
        self.grid.draw_line(round(x1), round(y1), round(x2), round(y2), depth, color)

        self.branch_count += 1
        if self.progress_callback:
            self.progress_callback(min(self.branch_count / self._total, 1.0) if self._total else 1.0)

        self.draw_branch(x2, y2, angle - self.random_angle(), depth - 1)
        self.draw_branch(x2, y2, angle + self.random_angle(), depth - 1)


class RasterCanvas:
    """RGBA pixel buffer exposing the fill_rect paint capability."""

    def __init__(self, width, height, background=TRANSPARENT):
        self.width = width
        self.height = height
        self.pixels = np.zeros((height, width, 4), np.uint8)
        if background != TRANSPARENT:
            self.pixels[:, :] = parse_color(background)

    def fill_rect(self, x, y, width, height, color):
        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + width, self.width), min(y + height, self.height)
        if x0 >= x1 or y0 >= y1:
            return
        self.pixels[y0:y1, x0:x1] = parse_color(color)

    def to_image(self):
        return Image.fromarray(self.pixels, 'RGBA')


def parse_color(color):
    if color == TRANSPARENT:
        return (0, 0, 0, 0)
    return ImageColor.getcolor(color, 'RGBA')


def render_grid_to_image(grid, background=TRANSPARENT, signature=None):
    canvas = RasterCanvas(grid.width, grid.height, background)
    grid.render(canvas.fill_rect)
    img = canvas.to_image()
    if signature:
        draw = ImageDraw.Draw(img)
        font = ImageFont.load_default()
        # baseline sits 10px above the bottom edge, 75px in from the right
        x, baseline = max(grid.width - 75, 0), grid.height - 10
        if isinstance(font, ImageFont.FreeTypeFont):
            draw.text((x, baseline), signature, fill=(0, 0, 0, 255), font=font, anchor="ls")
        else:
            # bitmap fonts only support top-left placement
            top = baseline - font.getbbox(signature)[3]
            draw.text((x, top), signature, fill=(0, 0, 0, 255), font=font)
    return img


def generate_fractal_tree(params, rng=None, progress_callback=None, cancel_check=None):
    if rng is None:
        rng = random.Random(params.seed)
    grid = PixelGrid(params.width, params.height)
    tree = FractalTree(
        params.depth, grid, rng=rng, branch_unit=params.branch_unit,
        spread=(params.spread_min, params.spread_max), leaf_depth=params.leaf_depth,
        progress_callback=progress_callback, cancel_check=cancel_check,
    )
    logger.info("generated fractal tree: depth=%d seed=%s branches=%d",
                params.depth, params.seed, tree.branch_count)
    return grid


def generate_fractal_image(params, rng=None, progress_callback=None, cancel_check=None):
    grid = generate_fractal_tree(params, rng=rng, progress_callback=progress_callback,
                                 cancel_check=cancel_check)
    return render_grid_to_image(grid, background=params.background, signature=params.signature)


def generate_fractal_preview(params, size=None, progress_callback=None, cancel_check=None):
    img = generate_fractal_image(params, progress_callback=progress_callback, cancel_check=cancel_check)
    if size is None:
        size = (max(params.width // 3, 1), max(params.height // 3, 1))
    return img.resize(size, Image.NEAREST)


def image_to_data_url(img):
    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return 'data:image/png;base64,' + base64.b64encode(buf.getvalue()).decode('ascii')


def export_fractal(params, prefix='fractal', output_dir='output'):
    """Render the tree described by params and save it as a PNG. Returns the filename."""
    img = generate_fractal_image(params)
    timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
    os.makedirs(output_dir, exist_ok=True)
    filename = os.path.join(output_dir, f'{prefix}_{timestamp}.png')
    img.save(filename, format='PNG')
    logger.info("exported %s", filename)
    return filename
