"""boxdesigner_export.py

Writers for a generated BoxResult:

- SVG: hand-written markup, mm units, CUT layer + ENGRAVE text layer.
- DXF: ezdxf, one LINE per polyline edge (or one LWPOLYLINE per path).
- PDF: matplotlib, one page of doc_size millimeters.

All writers only read the result; no geometry is recomputed here.
Coordinates are sheet millimeters with y growing away from the BACK panel.
"""

from __future__ import annotations

import json
import logging
import textwrap
from datetime import datetime
from xml.sax.saxutils import escape
from typing import Callable, Dict, List, Optional, Tuple

import ezdxf
from ezdxf import units
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure

from boxdesigner import APP_NAME, HOMEPAGE, BoxResult, Point, __version__, is_closed_path

log = logging.getLogger(__name__)

MM_PER_INCH = 25.4
MM_TO_POINTS = 72 / MM_PER_INCH

# Descriptive text block, positioned in sheet mm like the geometry.
INFO_X_MM = 15.0
INFO_Y_MM = 35.0
INFO_LINE_STEP_MM = 15 / MM_TO_POINTS
INFO_FONT_SIZE = 10
BBOX_TEXT_FROM_TOP_MM = 20.0
LINE_WIDTH_PT = 0.1

# SVG text sits in the free corner left of BACK and above LEFT.
SVG_TEXT_PAD_MM = 2.0
SVG_MAX_FONT_MM = 3.5
SVG_LINE_SPACING = 1.25
# Average Helvetica advance width as a fraction of the font size.
SVG_GLYPH_WIDTH = 0.6


def fmt(n: float) -> str:
    return f"{n:.3f}".rstrip("0").rstrip(".")


def drawable_points(path: List[Point]) -> Tuple[List[Point], bool]:
    """Points to emit for a path, without the duplicated closing point."""

    closed = is_closed_path(path)
    return (list(path[:-1]) if closed else list(path)), closed


def info_lines(
    result: BoxResult,
    *,
    app_name: str = APP_NAME,
    app_version: str = __version__,
    homepage: str = HOMEPAGE,
    now: Optional[datetime] = None,
) -> List[Tuple[str, float, float]]:
    """Text overlay as (text, x_mm, y_mm), y measured like the geometry."""

    now = now or datetime.now()
    s = result.size
    texts = [
        f"Cut Width: {result.metadata['cut_width']:.4f}mm",
        f"Material Thickness: {result.metadata['thickness']:.4f}mm",
        f"W x D x H: {s.w:.2f}mm x {s.d:.2f}mm x {s.h:.2f}mm",
        f"Produced by {app_name} v{app_version} on {now.month}/{now.day}/{now.year} at {now:%H:%M:%S}",
        homepage,
    ]
    out = [(txt, INFO_X_MM, INFO_Y_MM - i * INFO_LINE_STEP_MM) for i, txt in enumerate(texts)]
    if result.params.bounding_box:
        bb = result.bounding_box_size
        out.append(
            (
                f"Bounding Box: {bb.w:.2f}mm x {bb.h:.2f}mm",
                INFO_X_MM,
                result.doc_size.h - BBOX_TEXT_FROM_TOP_MM,
            )
        )
    return out


# ---------------------------------------------------------------------------
# SVG
# ---------------------------------------------------------------------------


def polyline_to_path(points: List[Point], close: bool = True) -> str:
    if not points:
        return ""
    d = [f"M {fmt(points[0][0])} {fmt(points[0][1])}"]
    for x, y in points[1:]:
        d.append(f"L {fmt(x)} {fmt(y)}")
    if close:
        d.append("Z")
    return " ".join(d)


def svg_header(width: float, height: float) -> str:
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>\n"
        f"<svg xmlns=\"http://www.w3.org/2000/svg\" width=\"{fmt(width)}mm\" height=\"{fmt(height)}mm\" viewBox=\"0 0 {fmt(width)} {fmt(height)}\">\n"
        f"  <desc>Generated by {APP_NAME} v{__version__}</desc>\n"
    )


def svg_footer() -> str:
    return "</svg>\n"


def svg_layer_styles(*, stroke_mm: float = 0.2) -> str:
    s = max(0.001, float(stroke_mm))
    return (
        "  <style>\n"
        f"    .cut {{ fill: none; stroke: #ff0000; stroke-width: {fmt(s)}; }}\n"
        "    .text { fill: #000000; font-family: Helvetica, Arial, sans-serif; }\n"
        "  </style>\n"
    )


def svg_text_block(result: BoxResult, texts: List[str]) -> Tuple[float, List[Tuple[str, float, float]]]:
    """Font size and (text, x, y) baselines for the SVG text layer.

    The block fills the empty corner x < BACK, y < LEFT (inside the bounding
    box, if one is drawn), shrinking the font until the longest line fits, so
    nothing is engraved onto a panel.
    """

    d = result.dimensions
    m = d.margin
    left = top = m + SVG_TEXT_PAD_MM
    avail_w = d.size.d + m - 2 * SVG_TEXT_PAD_MM
    avail_h = d.size.h + m - 2 * SVG_TEXT_PAD_MM
    longest = max((len(t) for t in texts), default=1)
    font = min(
        SVG_MAX_FONT_MM,
        avail_w / (longest * SVG_GLYPH_WIDTH),
        avail_h / (max(len(texts), 1) * SVG_LINE_SPACING),
    )
    step = font * SVG_LINE_SPACING
    return font, [(txt, left, top + font + i * step) for i, txt in enumerate(texts)]


def make_svg(
    result: BoxResult,
    *,
    stroke_mm: float = 0.2,
    labels: bool = True,
    homepage: str = HOMEPAGE,
    now: Optional[datetime] = None,
) -> str:
    W = result.doc_size.w
    H = result.doc_size.h
    meta = result.params.to_dict()
    meta_comment = "\n".join(textwrap.wrap(json.dumps(meta, ensure_ascii=False), width=120))

    out: List[str] = [svg_header(W, H), svg_layer_styles(stroke_mm=stroke_mm)]
    out.append(f"  <!-- params: {meta_comment} -->\n")

    out.append('  <g id="CUT" class="cut">\n')
    for path in result.paths:
        if len(path) < 2:
            continue
        pts, closed = drawable_points(path)
        out.append(f'    <path d="{polyline_to_path(pts, close=closed)}"/>\n')
    out.append("  </g>\n")

    if labels:
        texts = [txt for txt, _, _ in info_lines(result, homepage=homepage, now=now)]
        font, placed = svg_text_block(result, texts)
        out.append(f'  <g id="ENGRAVE" class="text" font-size="{fmt(font)}">\n')
        for txt, x, y in placed:
            out.append(f'    <text x="{fmt(x)}" y="{fmt(y)}">{escape(txt)}</text>\n')
        out.append("  </g>\n")
    out.append(svg_footer())
    return "".join(out)


def write_svg(result: BoxResult, out_path: str, **kwargs) -> None:
    svg = make_svg(result, **kwargs)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(svg)


# ---------------------------------------------------------------------------
# DXF
# ---------------------------------------------------------------------------


def make_dxf(result: BoxResult, *, polylines: bool = False):
    """Build an ezdxf document in millimeters.

    By default every polyline edge becomes a LINE entity and closed paths get an
    explicit closing LINE. With `polylines` each path becomes one LWPOLYLINE,
    closed where the path is closed.
    """

    doc = ezdxf.new("R2010")
    doc.units = units.MM
    msp = doc.modelspace()

    for path in result.paths:
        if len(path) < 2:
            continue
        pts, closed = drawable_points(path)
        if polylines:
            msp.add_lwpolyline(pts, close=closed)
            continue
        for a, b in zip(pts, pts[1:]):
            msp.add_line(a, b)
        if closed:
            msp.add_line(pts[-1], pts[0])
    return doc


def write_dxf(result: BoxResult, out_path: str, *, polylines: bool = False) -> None:
    doc = make_dxf(result, polylines=polylines)
    doc.saveas(out_path)


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def make_pdf_figure(
    result: BoxResult,
    *,
    app_name: str = APP_NAME,
    app_version: str = __version__,
    homepage: str = HOMEPAGE,
    now: Optional[datetime] = None,
) -> Figure:
    W = result.doc_size.w
    H = result.doc_size.h
    fig = Figure(figsize=(W / MM_PER_INCH, H / MM_PER_INCH))
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_axis_off()

    lines = []
    for path in result.paths:
        if len(path) < 2:
            continue
        lines.extend([a, b] for a, b in zip(path, path[1:]))
    ax.add_collection(LineCollection(lines, linewidths=LINE_WIDTH_PT, colors="black"))

    for txt, x, y in info_lines(result, app_name=app_name, app_version=app_version, homepage=homepage, now=now):
        ax.text(x, y, txt, fontsize=INFO_FONT_SIZE, color="black")

    # PDF space: origin bottom-left, 1 data unit == 1 mm.
    ax.set_xlim(0, W)
    ax.set_ylim(0, H)
    return fig


def write_pdf(
    result: BoxResult,
    out_path: str,
    *,
    app_name: str = APP_NAME,
    app_version: str = __version__,
    homepage: str = HOMEPAGE,
    now: Optional[datetime] = None,
) -> None:
    now = now or datetime.now()
    fig = make_pdf_figure(result, app_name=app_name, app_version=app_version, homepage=homepage, now=now)
    metadata = {
        "Title": f"{app_name} cut layout",
        "Creator": f"{app_name} v{app_version}",
        "CreationDate": now,
    }
    with PdfPages(out_path, metadata=metadata) as pdf:
        pdf.savefig(fig)


EXPORTERS: Dict[str, Callable[..., None]] = {
    "svg": write_svg,
    "dxf": write_dxf,
    "pdf": write_pdf,
}


def export(result: BoxResult, fmt_name: str, out_path: str, **kwargs) -> None:
    if fmt_name not in EXPORTERS:
        raise ValueError(f"Unknown export format: {fmt_name!r} (expected one of {', '.join(EXPORTERS)})")
    EXPORTERS[fmt_name](result, out_path, **kwargs)
    log.info("wrote %s layout to %s", fmt_name.upper(), out_path)
