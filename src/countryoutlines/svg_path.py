"""SVG path data: emitting outline paths and flattening traced ones."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .models import Coordinate, PolygonData
from .projection import Projector

_COMMAND_CHARS = "MmLlHhVvCcSsQqTtAaZz"
_MOVE_RE = re.compile(r"[Mm]")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_SEPARATOR_RE = re.compile(r"[\s,]*")
_PARAM_COUNTS = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7, "Z": 0}
_ARC_FLAG_INDEXES = (3, 4)

DEFAULT_CURVE_SEGMENTS = 16


class PathDataError(ValueError):
    """Raised when SVG path data cannot be parsed."""


def build_svg_path(polygons: Sequence[PolygonData], projector: Projector) -> str:
    """Emit one ``M/L/Z`` sub-path per polygon exterior.

    Coordinates are rounded to one decimal place, which is plenty for
    card-sized outlines.
    """
    parts: list[str] = []
    for polygon in polygons:
        if not polygon.exterior:
            continue
        for idx, (lon, lat) in enumerate(polygon.exterior):
            x, y = projector.transform(lon, lat)
            parts.append(f"{'M' if idx == 0 else 'L'}{x:.1f},{y:.1f}")
        parts.append("Z")
    return "".join(parts)


def count_subpaths(d: str) -> int:
    return len(_MOVE_RE.findall(d))


def first_subpath(d: str) -> str:
    """Path data up to (not including) the second move command."""
    matches = list(_MOVE_RE.finditer(d))
    if len(matches) < 2:
        return d.strip()
    return d[: matches[1].start()].strip()


@dataclass(frozen=True, slots=True)
class PathCommand:
    command: str
    args: tuple[float, ...]


class _PathScanner:
    def __init__(self, d: str) -> None:
        self.d = d
        self.pos = 0

    def skip_separators(self) -> None:
        match = _SEPARATOR_RE.match(self.d, self.pos)
        if match is not None:
            self.pos = match.end()

    def at_end(self) -> bool:
        self.skip_separators()
        return self.pos >= len(self.d)

    def peek_command(self) -> str | None:
        self.skip_separators()
        if self.pos < len(self.d) and self.d[self.pos] in _COMMAND_CHARS:
            return self.d[self.pos]
        return None

    def number(self) -> float:
        self.skip_separators()
        match = _NUMBER_RE.match(self.d, self.pos)
        if match is None:
            raise PathDataError(f"Expected number at offset {self.pos} in path data")
        value = float(match.group(0))
        if not math.isfinite(value):
            raise PathDataError(f"Non-finite number {match.group(0)!r} at offset {self.pos} in path data")
        self.pos = match.end()
        return value

    def flag(self) -> float:
        self.skip_separators()
        if self.pos >= len(self.d) or self.d[self.pos] not in "01":
            raise PathDataError(f"Expected arc flag at offset {self.pos} in path data")
        value = float(self.d[self.pos])
        self.pos += 1
        return value


def parse_path_data(d: str) -> list[PathCommand]:
    """Tokenize path data into commands with implicit repeats expanded.

    Extra coordinate pairs after a moveto become linetos of the same
    relativity, as SVG prescribes.
    """
    scanner = _PathScanner(d)
    commands: list[PathCommand] = []
    current: str | None = None
    while not scanner.at_end():
        explicit = scanner.peek_command()
        if explicit is not None:
            scanner.pos += 1
            current = explicit
        elif current is None:
            raise PathDataError("Path data must begin with a command")
        elif current in "Zz":
            raise PathDataError(f"Unexpected number after closepath at offset {scanner.pos}")

        count = _PARAM_COUNTS[current.upper()]
        if count == 0:
            commands.append(PathCommand(current, ()))
            continue
        args: list[float] = []
        for idx in range(count):
            if current in "Aa" and idx in _ARC_FLAG_INDEXES:
                args.append(scanner.flag())
            else:
                args.append(scanner.number())
        commands.append(PathCommand(current, tuple(args)))
        if current == "M":
            current = "L"
        elif current == "m":
            current = "l"
    return commands


def flatten_path(d: str, curve_segments: int = DEFAULT_CURVE_SEGMENTS) -> list[list[Coordinate]]:
    """Turn path data into one dense polyline per sub-path.

    Curves are sampled at ``curve_segments`` points each; a closepath appends
    the sub-path start so the closing edge counts toward the path length.
    """
    subpaths: list[list[Coordinate]] = []
    points: list[Coordinate] = []
    x = y = 0.0
    start_x = start_y = 0.0
    last_cubic: Coordinate | None = None
    last_quad: Coordinate | None = None
    closed = False

    def begin(px: float, py: float) -> None:
        nonlocal points
        if len(points) > 1:
            subpaths.append(points)
        points = [(px, py)]

    for item in parse_path_data(d):
        cmd = item.command
        upper = cmd.upper()
        relative = cmd != upper
        a = item.args
        ox, oy = (x, y) if relative else (0.0, 0.0)
        prev_cubic, prev_quad = last_cubic, last_quad
        last_cubic = last_quad = None

        if upper == "M":
            x, y = ox + a[0], oy + a[1]
            start_x, start_y = x, y
            begin(x, y)
            closed = False
            continue
        if upper == "Z":
            if points and points[-1] != (start_x, start_y):
                points.append((start_x, start_y))
            x, y = start_x, start_y
            closed = True
            continue
        if closed or not points:
            begin(x, y)
            closed = False

        if upper == "L":
            x, y = ox + a[0], oy + a[1]
            points.append((x, y))
        elif upper == "H":
            x = ox + a[0]
            points.append((x, y))
        elif upper == "V":
            y = oy + a[0]
            points.append((x, y))
        elif upper in "CS":
            if upper == "C":
                c1 = (ox + a[0], oy + a[1])
                c2, end = (ox + a[2], oy + a[3]), (ox + a[4], oy + a[5])
            else:
                c1 = (2 * x - prev_cubic[0], 2 * y - prev_cubic[1]) if prev_cubic else (x, y)
                c2, end = (ox + a[0], oy + a[1]), (ox + a[2], oy + a[3])
            points.extend(_cubic_points((x, y), c1, c2, end, curve_segments))
            last_cubic = c2
            x, y = end
        elif upper in "QT":
            if upper == "Q":
                ctrl, end = (ox + a[0], oy + a[1]), (ox + a[2], oy + a[3])
            else:
                ctrl = (2 * x - prev_quad[0], 2 * y - prev_quad[1]) if prev_quad else (x, y)
                end = (ox + a[0], oy + a[1])
            points.extend(_quadratic_points((x, y), ctrl, end, curve_segments))
            last_quad = ctrl
            x, y = end
        elif upper == "A":
            end = (ox + a[5], oy + a[6])
            points.extend(
                _arc_points((x, y), a[0], a[1], a[2], bool(a[3]), bool(a[4]), end, curve_segments)
            )
            x, y = end

    if len(points) > 1:
        subpaths.append(points)
    return subpaths


def _cubic_points(
    p0: Coordinate, p1: Coordinate, p2: Coordinate, p3: Coordinate, segments: int
) -> list[Coordinate]:
    t = np.linspace(0.0, 1.0, max(segments, 1) + 1)[1:]
    mt = 1.0 - t
    xs = mt**3 * p0[0] + 3 * mt**2 * t * p1[0] + 3 * mt * t**2 * p2[0] + t**3 * p3[0]
    ys = mt**3 * p0[1] + 3 * mt**2 * t * p1[1] + 3 * mt * t**2 * p2[1] + t**3 * p3[1]
    return [(float(px), float(py)) for px, py in zip(xs, ys)]


def _quadratic_points(p0: Coordinate, p1: Coordinate, p2: Coordinate, segments: int) -> list[Coordinate]:
    t = np.linspace(0.0, 1.0, max(segments, 1) + 1)[1:]
    mt = 1.0 - t
    xs = mt**2 * p0[0] + 2 * mt * t * p1[0] + t**2 * p2[0]
    ys = mt**2 * p0[1] + 2 * mt * t * p1[1] + t**2 * p2[1]
    return [(float(px), float(py)) for px, py in zip(xs, ys)]


def _arc_points(
    start: Coordinate,
    rx: float,
    ry: float,
    rotation_deg: float,
    large_arc: bool,
    sweep: bool,
    end: Coordinate,
    segments: int,
) -> list[Coordinate]:
    """Sample an elliptical arc via the endpoint-to-center conversion."""
    x1, y1 = start
    x2, y2 = end
    if (x1, y1) == (x2, y2):
        return []
    rx, ry = abs(rx), abs(ry)
    if rx == 0 or ry == 0:
        return [end]

    phi = math.radians(rotation_deg)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    dx, dy = (x1 - x2) / 2.0, (y1 - y2) / 2.0
    x1p = cos_phi * dx + sin_phi * dy
    y1p = -sin_phi * dx + cos_phi * dy

    radii_check = (x1p**2) / (rx**2) + (y1p**2) / (ry**2)
    if radii_check > 1:
        rx *= math.sqrt(radii_check)
        ry *= math.sqrt(radii_check)

    numerator = rx**2 * ry**2 - rx**2 * y1p**2 - ry**2 * x1p**2
    denominator = rx**2 * y1p**2 + ry**2 * x1p**2
    coef = math.sqrt(max(numerator, 0.0) / denominator) if denominator else 0.0
    if large_arc == sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx
    cx = cos_phi * cxp - sin_phi * cyp + (x1 + x2) / 2.0
    cy = sin_phi * cxp + cos_phi * cyp + (y1 + y2) / 2.0

    def angle(ux: float, uy: float, vx: float, vy: float) -> float:
        return math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)

    theta1 = angle(1.0, 0.0, (x1p - cxp) / rx, (y1p - cyp) / ry)
    delta = angle((x1p - cxp) / rx, (y1p - cyp) / ry, (-x1p - cxp) / rx, (-y1p - cyp) / ry)
    if not sweep and delta > 0:
        delta -= 2 * math.pi
    elif sweep and delta < 0:
        delta += 2 * math.pi

    t = theta1 + delta * np.linspace(0.0, 1.0, max(segments, 1) + 1)[1:]
    xs = cx + rx * np.cos(t) * cos_phi - ry * np.sin(t) * sin_phi
    ys = cy + rx * np.cos(t) * sin_phi + ry * np.sin(t) * cos_phi
    out = [(float(px), float(py)) for px, py in zip(xs, ys)]
    out[-1] = end
    return out
