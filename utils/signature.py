import base64
import binascii
import math
import re
import time
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, UnidentifiedImageError

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

# Synthetic spacing for point lists that arrive without timestamps (~60Hz pointer events)
DEFAULT_POINT_INTERVAL_MS = 16.0

Point = Tuple[float, float, float]


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """Returns (mime type, raw bytes). Raises ValueError on anything malformed."""
    match = DATA_URI_PATTERN.match((data_uri or "").strip())
    if not match:
        raise ValueError("Signature is not a base64 image data URI")
    try:
        raw = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as exc:
        raise ValueError("Signature data is not valid base64") from exc
    return match.group("mime"), raw


def load_signature_image(data_uri: str) -> Image.Image:
    _, raw = decode_data_uri(data_uri)
    try:
        image = Image.open(BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Signature data is not a readable image") from exc
    return image.convert("RGBA")


def encode_png(image: Image.Image) -> str:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class SignaturePad:
    """
    Server-side counterpart of the browser signature canvas.

    Strokes are drawn onto a transparent RGBA buffer with a pen whose width
    shrinks as the pointer speeds up, clamped to [min_width, max_width].
    Finishing a stroke snapshots the buffer, so a surface that loses its
    pixels (mobile browsers clear canvases on resize or visibility changes)
    can still export or restore the last completed signature.
    """

    def __init__(
        self,
        width: int = 500,
        height: int = 160,
        min_width: float = 1.5,
        max_width: float = 3.0,
        pen_color: str = "#1a1a1a",
        velocity_filter_weight: float = 0.7,
    ):
        if min_width <= 0 or max_width < min_width:
            raise ValueError("Stroke widths must satisfy 0 < min_width <= max_width")
        self.width = width
        self.height = height
        self.min_width = min_width
        self.max_width = max_width
        self.pen_color = pen_color
        self.velocity_filter_weight = velocity_filter_weight

        self._image = self._blank()
        self._strokes: List[List[Point]] = []
        self._active: Optional[List[Point]] = None
        self._cached: Optional[str] = None
        self._restored = False
        self._last_velocity = 0.0
        self._last_width = (min_width + max_width) / 2

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    @property
    def strokes(self) -> List[List[Point]]:
        return [list(stroke) for stroke in self._strokes]

    @property
    def has_live_content(self) -> bool:
        return bool(self._strokes) or self._active is not None or self._restored

    def _stroke_width(self, velocity: float) -> float:
        return max(self.max_width / (velocity + 1), self.min_width)

    def _dot(self, x: float, y: float, width: float):
        radius = width / 2
        ImageDraw.Draw(self._image).ellipse((x - radius, y - radius, x + radius, y + radius), fill=self.pen_color)

    def begin_stroke(self, x: float, y: float, t: Optional[float] = None):
        if self._active is not None:
            self.end_stroke()
        point = (x, y, time.monotonic() * 1000 if t is None else t)
        self._active = [point]
        self._last_velocity = 0.0
        self._last_width = (self.min_width + self.max_width) / 2
        self._dot(x, y, self._last_width)

    def add_point(self, x: float, y: float, t: Optional[float] = None):
        if self._active is None:
            self.begin_stroke(x, y, t)
            return
        previous = self._active[-1]
        t = time.monotonic() * 1000 if t is None else t
        elapsed = max(t - previous[2], 1.0)
        velocity = math.hypot(x - previous[0], y - previous[1]) / elapsed
        velocity = self.velocity_filter_weight * velocity + (1 - self.velocity_filter_weight) * self._last_velocity
        width = self._stroke_width(velocity)
        segment_width = (self._last_width + width) / 2

        draw = ImageDraw.Draw(self._image)
        draw.line((previous[0], previous[1], x, y), fill=self.pen_color, width=max(1, round(segment_width)))
        self._dot(x, y, segment_width)

        self._active.append((x, y, t))
        self._last_velocity = velocity
        self._last_width = width

    def end_stroke(self):
        if self._active is None:
            return
        self._strokes.append(self._active)
        self._active = None
        self._cached = encode_png(self._image)

    def draw_stroke(self, points: Sequence[Sequence[float]]):
        """Draws a whole stroke; points are (x, y) or (x, y, t_ms)."""
        for index, point in enumerate(points):
            t = point[2] if len(point) > 2 else index * DEFAULT_POINT_INTERVAL_MS
            if index == 0:
                self.begin_stroke(point[0], point[1], t)
            else:
                self.add_point(point[0], point[1], t)
        self.end_stroke()

    def clear(self):
        """Wipes strokes, the buffer and the cached snapshot."""
        self._image = self._blank()
        self._strokes = []
        self._active = None
        self._cached = None
        self._restored = False

    def reset_buffer(self):
        """The drawing surface lost its pixels; the snapshot survives."""
        self._image = self._blank()
        self._strokes = []
        self._active = None
        self._restored = False

    def is_empty(self) -> bool:
        return not self.has_live_content and self._cached is None

    def restore(self) -> bool:
        """Puts the cached signature back, but never over a drawing in progress."""
        if self.has_live_content or self._cached is None:
            return False
        self._image = load_signature_image(self._cached).resize((self.width, self.height))
        self._restored = True
        return True

    def load_image(self, data_uri: str) -> bool:
        load_signature_image(data_uri)
        self._cached = data_uri
        return self.restore()

    def export_image(self) -> str:
        if self.has_live_content:
            return encode_png(self._image)
        if self._cached is not None:
            return self._cached
        return encode_png(self._image)


def rasterize_strokes(strokes: Sequence[Sequence[Sequence[float]]], **pad_options) -> str:
    pad = SignaturePad(**pad_options)
    for stroke in strokes:
        if stroke:
            pad.draw_stroke(stroke)
    return pad.export_image()
