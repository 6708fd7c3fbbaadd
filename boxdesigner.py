#!/usr/bin/env python3
"""boxdesigner.py

Cutting-layout generator for laser-cut finger-jointed (notched) boxes.

Given outer box dimensions, material thickness, laser kerf and a target notch
length, the generator lays out the unfolded net of the box on one sheet:

    BACK
    LEFT  BOTTOM  RIGHT
          FRONT
          TOP

Every panel edge is a finger-joint edge built from the same two routines
(horizontal / vertical), so mating edges always agree on notch count and phase.

Key rules:
- Notch count per axis is the "closest odd" of length / notch_length
  (round half up, then step down to odd, minimum 1). Odd counts give every
  edge a full notch at both ends, so opposing panels interlock.
- Kerf compensation: panel sizes grow by one cut width; along each edge,
  protruding fingers are drawn cut_width / 2 wider and recesses cut_width / 2
  narrower (the sign is chosen per edge).
- The result is a flat list of segments in draw order plus the polylines
  obtained by stitching segments that share endpoints (0.01 mm precision).

Exporters (SVG / DXF / PDF) live in boxdesigner_export.py, the command line in
boxdesigner_cli.py.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import pyclipper

__version__ = "0.1"

APP_NAME = "Box Designer"
HOMEPAGE = "https://dataculture.northeastern.edu/box-designer/"

log = logging.getLogger(__name__)

Point = Tuple[float, float]
Segment = Tuple[Point, Point]

# Decimal places kept by point_key.
POINT_PRECISION = 2
# Max per-axis gap (mm) between two endpoints that are the same point.
POINT_TOLERANCE = 0.005
# Max gap (mm) between first and last point of a path that still counts as closed.
CLOSE_TOLERANCE = 0.01
BASE_MARGIN = 10.0

PANEL_ORDER = ("BACK", "LEFT", "BOTTOM", "RIGHT", "FRONT", "TOP")

# camelCase names accepted in parameter files (web form field names).
PARAM_ALIASES = {
    "cutWidth": "cut_width",
    "notchLength": "notch_length",
    "boundingBox": "bounding_box",
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def closest_odd(x: float) -> int:
    n = round_half_up(x)
    return n - 1 if n % 2 == 0 else n


def point_key(p: Point, places: int = POINT_PRECISION) -> Tuple[float, float]:
    """Coordinates rounded to `places` decimals, for sorting and display.

    Rounding puts two nearly equal floats on different sides of a .xx5 boundary,
    so endpoint matching goes through points_equal instead.
    """

    # + 0.0 folds -0.0 into 0.0
    return (round(p[0], places) + 0.0, round(p[1], places) + 0.0)


def points_equal(p: Point, q: Point, tol: float = POINT_TOLERANCE) -> bool:
    return abs(p[0] - q[0]) <= tol and abs(p[1] - q[1]) <= tol


def is_closed_path(path: List[Point], tol: float = CLOSE_TOLERANCE) -> bool:
    if len(path) <= 2:
        return False
    (x0, y0), (x1, y1) = path[0], path[-1]
    return abs(x0 - x1) < tol and abs(y0 - y1) < tol


def polygon_area(points: List[Point]) -> float:
    if len(points) < 3:
        return 0.0
    a = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:] + points[:1]):
        a += x0 * y1 - x1 * y0
    return 0.5 * a


def bbox_points(points: Iterable[Point]) -> Tuple[float, float, float, float]:
    pts = list(points)
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return (min(xs), min(ys), max(xs), max(ys))


@dataclass(frozen=True)
class Size2:
    w: float
    h: float


@dataclass(frozen=True)
class Size3:
    w: float
    h: float
    d: float

    def axis(self, name: str) -> float:
        return getattr(self, name)


@dataclass(frozen=True)
class BoxParams:
    """Outer box dimensions and cutting parameters, all in sheet units (mm)."""

    width: float
    height: float
    depth: float
    thickness: float
    cut_width: float
    notch_length: float
    bounding_box: bool
    tray: bool

    def __post_init__(self):
        for name in ("width", "height", "depth", "thickness", "cut_width", "notch_length"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise ValueError(f"{name} must be a number, got {v!r}")
            if not math.isfinite(v):
                raise ValueError(f"{name} must be finite, got {v!r}")
        for name in ("width", "height", "depth", "thickness", "notch_length"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.cut_width < 0:
            raise ValueError("cut_width must be >= 0")

    @classmethod
    def from_dict(cls, data: dict) -> "BoxParams":
        """Build params from a mapping; accepts snake_case or camelCase keys."""

        if not isinstance(data, dict):
            raise TypeError("params must be a dict")
        fields = {"width", "height", "depth", "thickness", "cut_width", "notch_length", "bounding_box", "tray"}
        values: Dict[str, object] = {}
        for key, v in data.items():
            name = PARAM_ALIASES.get(key, key)
            if name not in fields:
                raise TypeError(f"unknown parameter: {key}")
            values[name] = v
        values.setdefault("bounding_box", False)
        values.setdefault("tray", False)
        missing = sorted(fields - set(values))
        if missing:
            raise ValueError(f"missing parameters: {', '.join(missing)}")
        return cls(
            width=float(values["width"]),
            height=float(values["height"]),
            depth=float(values["depth"]),
            thickness=float(values["thickness"]),
            cut_width=float(values["cut_width"]),
            notch_length=float(values["notch_length"]),
            bounding_box=bool(values["bounding_box"]),
            tray=bool(values["tray"]),
        )

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass(frozen=True)
class Dimensions:
    size: Size3
    num_notches: Size3
    notch_length: Size3
    margin: float
    doc_size: Size2
    bounding_box_size: Size2


def compute_dimensions(p: BoxParams) -> Dimensions:
    num_notches = Size3(
        w=max(1, closest_odd(p.width / p.notch_length)),
        h=max(1, closest_odd(p.height / p.notch_length)),
        d=max(1, closest_odd(p.depth / p.notch_length)),
    )

    # Kerf removes material on every cut; grow each edge by one cut width.
    grown = Size3(w=p.width + p.cut_width, h=p.height + p.cut_width, d=p.depth + p.cut_width)
    notch_length = Size3(
        w=grown.w / num_notches.w,
        h=grown.h / num_notches.h,
        d=grown.d / num_notches.d,
    )
    size = Size3(
        w=num_notches.w * notch_length.w,
        h=num_notches.h * notch_length.h,
        d=num_notches.d * notch_length.d,
    )

    margin = BASE_MARGIN + p.cut_width
    pieces_w = size.d * 2.0 + size.w
    pieces_h = size.h * 2.0 + size.d * 2.0

    dims = Dimensions(
        size=size,
        num_notches=num_notches,
        notch_length=notch_length,
        margin=margin,
        doc_size=Size2(w=pieces_w + margin * 4, h=pieces_h + margin * 5),
        bounding_box_size=Size2(w=pieces_w + margin * 2, h=pieces_h + margin * 3),
    )
    log.debug(
        "dimensions: size=%s notches=%s margin=%.3f doc=%s",
        size,
        num_notches,
        margin,
        dims.doc_size,
    )
    return dims


# ---------------------------------------------------------------------------
# Notch edges
# ---------------------------------------------------------------------------


def horizontal_edge(
    x0: float,
    y0: float,
    notch_width: float,
    notch_count: int,
    notch_height: float,
    kerf: float,
    *,
    flip: bool,
    smallside: bool,
) -> List[Segment]:
    """Finger-joint edge running in +x from (x0, y0).

    Notches alternate between the line y0 and y0 + notch_height; `flip` swaps
    which row the first notch sits on. `kerf` is signed: even (protruding)
    notches are widened by it at both ends and odd (recessed) ones narrowed.
    With `smallside` the first notch starts notch_height in, where the mating
    panel's thickness occupies the corner. The last notch always stops
    notch_height short of the far end.
    """

    segs: List[Segment] = []
    x = x0
    last = notch_count - 1
    for step in range(notch_count):
        y = y0 if ((step % 2 == 0) != flip) else y0 + notch_height

        if step == 0:
            start = x + notch_height if smallside else x
            segs.append(((start, y), (x + notch_width + kerf, y)))
        elif step == last:
            segs.append(((x - kerf, y), (x + notch_width - notch_height, y)))
        elif step % 2 == 0:
            segs.append(((x - kerf, y), (x + notch_width + kerf, y)))
        else:
            segs.append(((x + kerf, y), (x + notch_width - kerf, y)))

        if step < last:
            cx = x + notch_width + kerf if step % 2 == 0 else x + notch_width - kerf
            segs.append(((cx, y0 + notch_height), (cx, y0)))

        x += notch_width
    return segs


def vertical_edge(
    x0: float,
    y0: float,
    notch_width: float,
    notch_count: int,
    notch_height: float,
    kerf: float,
    *,
    flip: bool,
    smallside: bool,
) -> List[Segment]:
    """Finger-joint edge running in +y from (x0, y0); see horizontal_edge.

    Unlike the horizontal edge, the last notch is only shortened when
    `smallside` is set.
    """

    segs: List[Segment] = []
    y = y0
    last = notch_count - 1
    for step in range(notch_count):
        x = x0 if ((step % 2 == 0) != flip) else x0 + notch_height

        if step == 0:
            start = y + notch_height if smallside else y
            segs.append(((x, start), (x, y + notch_width + kerf)))
        elif step == last:
            end = y + notch_width - notch_height if smallside else y + notch_width
            segs.append(((x, y - kerf), (x, end)))
        elif step % 2 == 0:
            segs.append(((x, y - kerf), (x, y + notch_width + kerf)))
        else:
            segs.append(((x, y + kerf), (x, y + notch_width - kerf)))

        if step < last:
            cy = y + notch_width + kerf if step % 2 == 0 else y + notch_width - kerf
            segs.append(((x0 + notch_height, cy), (x0, cy)))

        y += notch_width
    return segs


class EdgeRole:
    FULL = "full"                  # notches start on the base line, full-length ends
    FULL_FLIPPED = "full_flipped"  # notches start one thickness in
    INSET = "inset"                # ends shortened by the mating panel's thickness
    INSET_FLIPPED = "inset_flipped"
    OPEN = "open"                  # plain straight cut, no fingers (tray rim)


# role -> (flip, smallside)
EDGE_ROLE_FLAGS: Dict[str, Tuple[bool, bool]] = {
    EdgeRole.FULL: (False, False),
    EdgeRole.FULL_FLIPPED: (True, False),
    EdgeRole.INSET: (False, True),
    EdgeRole.INSET_FLIPPED: (True, True),
}


def edge_segments(
    direction: str,
    x0: float,
    y0: float,
    *,
    notch_width: float,
    notch_count: int,
    thickness: float,
    kerf: float,
    role: str,
) -> List[Segment]:
    """Dispatch one panel edge to the notch routines according to its role.

    An OPEN edge is a single straight segment from (x0, y0), stopping one
    thickness short of the far end like a notched edge does.
    """

    length = notch_width * notch_count - thickness
    if role == EdgeRole.OPEN:
        if direction == "h":
            return [((x0, y0), (x0 + length, y0))]
        if direction == "v":
            return [((x0, y0), (x0, y0 + length))]
        raise ValueError(f"unknown edge direction: {direction!r}")

    if role not in EDGE_ROLE_FLAGS:
        raise ValueError(f"unknown edge role: {role!r}")
    flip, smallside = EDGE_ROLE_FLAGS[role]
    if direction == "h":
        fn = horizontal_edge
    elif direction == "v":
        fn = vertical_edge
    else:
        raise ValueError(f"unknown edge direction: {direction!r}")
    return fn(x0, y0, notch_width, notch_count, thickness, kerf, flip=flip, smallside=smallside)


# ---------------------------------------------------------------------------
# Panels
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PanelEdge:
    side: str            # top | bottom | left | right
    role: str
    kerf_sign: float     # +1: fingers widened by kerf/2, -1: narrowed
    open_in_tray: bool = False


@dataclass(frozen=True)
class PanelLayout:
    name: str
    across: str          # axis (w/h/d) along the panel's top and bottom edges
    down: str            # axis along its left and right edges
    edges: Tuple[PanelEdge, ...]


def _side_panel(name: str, across: str, left_sign: float, top_open: bool, bottom_open: bool) -> PanelLayout:
    return PanelLayout(
        name=name,
        across=across,
        down="h",
        edges=(
            PanelEdge("top", EdgeRole.FULL, +1, open_in_tray=top_open),
            PanelEdge("bottom", EdgeRole.FULL_FLIPPED, +1, open_in_tray=bottom_open),
            PanelEdge("left", EdgeRole.FULL, left_sign),
            PanelEdge("right", EdgeRole.FULL, -1),
        ),
    )


def _cap_panel(name: str) -> PanelLayout:
    return PanelLayout(
        name=name,
        across="w",
        down="d",
        edges=(
            PanelEdge("top", EdgeRole.INSET_FLIPPED, -1),
            PanelEdge("bottom", EdgeRole.INSET, -1),
            PanelEdge("left", EdgeRole.INSET_FLIPPED, -1),
            PanelEdge("right", EdgeRole.INSET, -1),
        ),
    )


PANEL_LAYOUTS: Dict[str, PanelLayout] = {
    "BACK": _side_panel("BACK", "w", -1, top_open=True, bottom_open=False),
    "LEFT": _side_panel("LEFT", "d", +1, top_open=True, bottom_open=False),
    "BOTTOM": _cap_panel("BOTTOM"),
    "RIGHT": _side_panel("RIGHT", "d", +1, top_open=True, bottom_open=False),
    # The front's top edge mates with the bottom panel; its far edge is the tray lip.
    "FRONT": _side_panel("FRONT", "w", -1, top_open=False, bottom_open=True),
    "TOP": _cap_panel("TOP"),
}


def panel_origin(name: str, dims: Dimensions) -> Point:
    s = dims.size
    m = dims.margin
    origins = {
        "BACK": (s.d + m * 2.0, m),
        "LEFT": (m, s.h + m * 2.0),
        "BOTTOM": (s.d + m * 2.0, s.h + m * 2.0),
        "RIGHT": (s.d + s.w + m * 3.0, s.h + m * 2.0),
        "FRONT": (s.d + m * 2.0, s.h + s.d + m * 3.0),
        "TOP": (s.d + m * 2.0, s.h * 2.0 + s.d + m * 4.0),
    }
    if name not in origins:
        raise KeyError(f"unknown panel: {name}")
    return origins[name]


def draw_panel(layout: PanelLayout, dims: Dimensions, p: BoxParams) -> List[Segment]:
    x0, y0 = panel_origin(layout.name, dims)
    t = p.thickness
    half_kerf = p.cut_width / 2.0
    across_w = dims.notch_length.axis(layout.across)
    across_n = dims.num_notches.axis(layout.across)
    down_w = dims.notch_length.axis(layout.down)
    down_n = dims.num_notches.axis(layout.down)
    across_size = dims.size.axis(layout.across)
    down_size = dims.size.axis(layout.down)

    segs: List[Segment] = []
    for e in layout.edges:
        role = EdgeRole.OPEN if (p.tray and e.open_in_tray) else e.role
        kerf = half_kerf * e.kerf_sign
        if e.side in ("top", "bottom"):
            y = y0 if e.side == "top" else y0 + down_size - t
            if role == EdgeRole.OPEN and EDGE_ROLE_FLAGS[e.role][0]:
                # A flipped edge's first notch sits one thickness further out.
                y += t
            segs.extend(
                edge_segments("h", x0, y, notch_width=across_w, notch_count=across_n, thickness=t, kerf=kerf, role=role)
            )
        else:
            x = x0 if e.side == "left" else x0 + across_size - t
            segs.extend(
                edge_segments("v", x, y0, notch_width=down_w, notch_count=down_n, thickness=t, kerf=kerf, role=role)
            )
    return segs


def draw_bounding_box(dims: Dimensions) -> List[Segment]:
    x = y = dims.margin
    w = dims.bounding_box_size.w
    h = dims.bounding_box_size.h
    return [
        ((x, y), (x + w, y)),
        ((x + w, y), (x + w, y + h)),
        ((x + w, y + h), (x, y + h)),
        ((x, y + h), (x, y)),
    ]


# ---------------------------------------------------------------------------
# Path stitching
# ---------------------------------------------------------------------------


def _join_pair(a: List[Point], b: List[Point]) -> Optional[List[Point]]:
    if points_equal(a[-1], b[0]):
        return a + b[1:]
    if points_equal(a[-1], b[-1]):
        return a + b[-2::-1]
    if points_equal(a[0], b[-1]):
        return b + a[1:]
    if points_equal(a[0], b[0]):
        return b[::-1] + a[1:]
    return None


def join_paths(segments: Iterable[Segment]) -> List[List[Point]]:
    """Stitch segments sharing endpoints into maximal polylines.

    Greedy: scan pairs (i, j > i) in order and merge the first match, as if
    restarting the scan from the first pair after every merge. Closed outlines
    come back with first point == last point; unmatched segments stay 2-point
    paths. An endpoint-indexed union-find would give the same set of polylines
    in near-linear time.
    """

    paths: List[List[Point]] = [[a, b] for a, b in segments]
    i = 0
    while i < len(paths):
        j = i + 1
        while j < len(paths):
            joined = _join_pair(paths[i], paths[j])
            if joined is None:
                j += 1
                continue
            paths[i] = joined
            del paths[j]
            # The merged ends are ends of paths i and j, which every earlier
            # row was already checked against, so only row i needs a rescan.
            j = i + 1
        i += 1
    return paths


def path_segments(path: List[Point]) -> List[Segment]:
    return list(zip(path, path[1:]))


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BoxResult:
    segments: List[Segment]
    paths: List[List[Point]]
    doc_size: Size2
    bounding_box_size: Size2
    size: Size3
    metadata: Dict[str, float]
    params: BoxParams
    dimensions: Dimensions
    panels: Dict[str, List[Segment]] = field(default_factory=dict)


def generate(p: BoxParams) -> BoxResult:
    dims = compute_dimensions(p)

    segments: List[Segment] = []
    if p.bounding_box:
        segments.extend(draw_bounding_box(dims))

    panels: Dict[str, List[Segment]] = {}
    for name in PANEL_ORDER:
        if p.tray and name == "TOP":
            continue
        segs = draw_panel(PANEL_LAYOUTS[name], dims, p)
        panels[name] = segs
        segments.extend(segs)

    paths = join_paths(segments)
    log.debug("generated %d segments, stitched into %d paths", len(segments), len(paths))

    return BoxResult(
        segments=segments,
        paths=paths,
        doc_size=dims.doc_size,
        bounding_box_size=dims.bounding_box_size,
        size=dims.size,
        metadata={"cut_width": p.cut_width, "thickness": p.thickness},
        params=p,
        dimensions=dims,
        panels=panels,
    )


# ---------------------------------------------------------------------------
# Layout check
# ---------------------------------------------------------------------------


@dataclass
class WarningMsg:
    severity: str  # error|warn|info
    code: str
    message: str
    fix: str


CLIPPER_SCALE = 1000.0


def _to_clipper(points: List[Point]) -> List[Tuple[int, int]]:
    return [(int(round(x * CLIPPER_SCALE)), int(round(y * CLIPPER_SCALE))) for x, y in points]


def _overlap_area(a: List[Tuple[int, int]], b: List[Tuple[int, int]]) -> float:
    pc = pyclipper.Pyclipper()
    pc.AddPath(a, pyclipper.PT_SUBJECT, True)
    pc.AddPath(b, pyclipper.PT_CLIP, True)
    res = pc.Execute(pyclipper.CT_INTERSECTION, pyclipper.PFT_NONZERO, pyclipper.PFT_NONZERO)
    return sum(abs(pyclipper.Area(poly)) for poly in res) / (CLIPPER_SCALE * CLIPPER_SCALE)


def check_layout(result: BoxResult) -> List[WarningMsg]:
    """Check the generated net for geometric consistency.

    Every panel must stitch into exactly one closed outline with non-zero area,
    no two panels may intersect, and all panels must sit inside the document.
    This says nothing about whether the joints are cuttable.
    """

    warns: List[WarningMsg] = []
    outlines: Dict[str, List[Tuple[int, int]]] = {}

    for name, segs in result.panels.items():
        paths = join_paths(segs)
        if len(paths) != 1 or not is_closed_path(paths[0]):
            warns.append(
                WarningMsg(
                    "error",
                    "PANEL_NOT_CLOSED",
                    f"{name} stitches into {len(paths)} path(s) instead of one closed outline.",
                    "Check notch counts and edge roles for this panel.",
                )
            )
            continue
        ring = paths[0][:-1]
        poly = _to_clipper(ring)
        if abs(pyclipper.Area(poly)) <= 0:
            warns.append(
                WarningMsg("error", "PANEL_DEGENERATE", f"{name} outline has zero area.", "Increase the box dimensions.")
            )
            continue
        x0, y0, x1, y1 = bbox_points(ring)
        if x0 < 0 or y0 < 0 or x1 > result.doc_size.w or y1 > result.doc_size.h:
            warns.append(
                WarningMsg(
                    "error",
                    "PANEL_OUTSIDE_SHEET",
                    f"{name} extends beyond the {result.doc_size.w:.1f} x {result.doc_size.h:.1f} document.",
                    "Check the panel offsets.",
                )
            )
        outlines[name] = poly

    names = list(outlines)
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            area = _overlap_area(outlines[a], outlines[b])
            if area > 1e-6:
                warns.append(
                    WarningMsg(
                        "error",
                        "PANELS_OVERLAP",
                        f"{a} and {b} overlap by {area:.3f} mm^2.",
                        "Increase the margin between panels.",
                    )
                )

    open_paths = [pth for pth in result.paths if not is_closed_path(pth)]
    if open_paths:
        warns.append(
            WarningMsg(
                "warn",
                "OPEN_PATHS",
                f"{len(open_paths)} path(s) in the cut layout are not closed.",
                "Open paths are cut as separate strokes.",
            )
        )
    return warns


def has_errors(warns: Iterable[WarningMsg]) -> bool:
    return any(w.severity == "error" for w in warns)
