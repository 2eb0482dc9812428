"""Pure 2D geometry used by the planner and the vehicle engine.

Every function accepts any object exposing ``x`` and ``y`` attributes, so
pydantic ``Position`` values and the planner's lightweight ``Point`` tuples
can be mixed freely.
"""
import math
from typing import NamedTuple, Optional

SQRT2_MINUS_1 = math.sqrt(2) - 1
_PARALLEL_EPS = 1e-8


class Point(NamedTuple):
    x: float
    y: float


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float


def distance(a, b) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def heuristic(a, b) -> float:
    """Octile distance, admissible for 8-directional moves."""
    dx = abs(b.x - a.x)
    dy = abs(b.y - a.y)
    return max(dx, dy) + SQRT2_MINUS_1 * min(dx, dy)


def unit_direction(a, b) -> Optional[Point]:
    length = distance(a, b)
    if length == 0:
        return None
    return Point((b.x - a.x) / length, (b.y - a.y) / length)


def move_toward(a, b, max_distance: float) -> Point:
    """Step from a toward b by at most ``max_distance`` without overshooting."""
    length = distance(a, b)
    if length <= max_distance:
        return Point(b.x, b.y)
    ratio = max_distance / length
    return Point(a.x + (b.x - a.x) * ratio, a.y + (b.y - a.y) * ratio)


def point_in_rect(x: float, y: float, rect: Rect, buffer: float = 0.0) -> bool:
    return (rect.x - buffer <= x <= rect.x + rect.width + buffer
            and rect.y - buffer <= y <= rect.y + rect.height + buffer)


def distance_to_rect(x: float, y: float, rect: Rect) -> float:
    """Distance from a point to the rectangle's boundary region (0 inside)."""
    dx = max(rect.x - x, 0.0, x - (rect.x + rect.width))
    dy = max(rect.y - y, 0.0, y - (rect.y + rect.height))
    return math.hypot(dx, dy)


def _ccw(a, b, c) -> bool:
    return (c.y - a.y) * (b.x - a.x) > (b.y - a.y) * (c.x - a.x)


def segments_intersect(a1, a2, b1, b2) -> bool:
    return _ccw(a1, b1, b2) != _ccw(a2, b1, b2) and _ccw(a1, a2, b1) != _ccw(a1, a2, b2)


def point_segment_distance(p, s1, s2) -> float:
    ux = s2.x - s1.x
    uy = s2.y - s1.y
    length_sq = ux * ux + uy * uy
    if length_sq < _PARALLEL_EPS:
        return distance(p, s1)
    t = ((p.x - s1.x) * ux + (p.y - s1.y) * uy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(s1.x + t * ux - p.x, s1.y + t * uy - p.y)


def min_distance_between_segments(p1, p2, q1, q2) -> float:
    """Minimum distance between segments p1-p2 and q1-q2.

    Closest points are found by clamped parametric projection. A segment that
    has collapsed to a point (a stationary agent) is handled as a point to
    segment distance.
    """
    ux, uy = p2.x - p1.x, p2.y - p1.y
    vx, vy = q2.x - q1.x, q2.y - q1.y
    wx, wy = p1.x - q1.x, p1.y - q1.y
    a = ux * ux + uy * uy
    b = ux * vx + uy * vy
    c = vx * vx + vy * vy
    d = ux * wx + uy * wy
    e = vx * wx + vy * wy

    if c < _PARALLEL_EPS:
        return point_segment_distance(q1, p1, p2)
    if a < _PARALLEL_EPS:
        return point_segment_distance(p1, q1, q2)

    denom = a * c - b * b
    s_d = t_d = denom
    if denom < _PARALLEL_EPS:
        s_n, s_d = 0.0, 1.0
        t_n, t_d = e, c
    else:
        s_n = b * e - c * d
        t_n = a * e - b * d
        if s_n < 0:
            s_n, t_n, t_d = 0.0, e, c
        elif s_n > s_d:
            s_n, t_n, t_d = s_d, e + b, c

    if t_n < 0:
        t_n = 0.0
        if -d < 0:
            s_n = 0.0
        elif -d > a:
            s_n = s_d
        else:
            s_n, s_d = -d, a
    elif t_n > t_d:
        t_n = t_d
        if -d + b < 0:
            s_n = 0.0
        elif -d + b > a:
            s_n = s_d
        else:
            s_n, s_d = -d + b, a

    sc = 0.0 if abs(s_n) < _PARALLEL_EPS else s_n / s_d
    tc = 0.0 if abs(t_n) < _PARALLEL_EPS else t_n / t_d
    return math.hypot(p1.x + sc * ux - (q1.x + tc * vx), p1.y + sc * uy - (q1.y + tc * vy))
