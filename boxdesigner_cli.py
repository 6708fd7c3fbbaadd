#!/usr/bin/env python3
"""Command line front end: box parameters in, SVG / DXF / PDF cut layout out."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from boxdesigner import APP_NAME, PARAM_ALIASES, BoxParams, __version__, check_layout, generate, has_errors
from boxdesigner_export import EXPORTERS, export

log = logging.getLogger("boxdesigner")

NUMERIC_FLAGS = ("width", "height", "depth", "thickness", "cut_width", "notch_length")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="box-designer",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            f"{APP_NAME} v{__version__}: laser-cut finger-jointed box layout generator.\n\n"
            "Dimensions are outer sizes in mm. Values from --params-json are used\n"
            "unless overridden by an explicit flag.\n"
        ),
    )
    ap.add_argument("--params-json", default=None, help="JSON file with box parameters")

    ap.add_argument("--width", type=float, default=None)
    ap.add_argument("--height", type=float, default=None)
    ap.add_argument("--depth", type=float, default=None)
    ap.add_argument("--thickness", type=float, default=None, help="Material thickness (mm)")
    ap.add_argument("--cut-width", type=float, default=None, help="Laser kerf (e.g. 0.1-0.25)")
    ap.add_argument("--notch-length", type=float, default=None, help="Target notch length (mm)")
    ap.add_argument("--bounding-box", action="store_true", default=None, help="Draw a reference rectangle around the net")
    ap.add_argument("--tray", action="store_true", default=None, help="Open tray: no top panel, plain top edges")

    ap.add_argument("--format", choices=sorted(EXPORTERS), default="svg")
    ap.add_argument("--out", default=None, help="Output path (default: box.<format>)")
    ap.add_argument("--dxf-polylines", action="store_true", help="DXF: one LWPOLYLINE per path instead of LINEs")
    ap.add_argument("--no-labels", action="store_true", help="SVG: omit the text layer")
    ap.add_argument("--strict", action="store_true", help="Write nothing if the layout check reports errors")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def load_params(args: argparse.Namespace) -> BoxParams:
    data = {}
    if args.params_json:
        with open(args.params_json, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise TypeError(f"{args.params_json}: params must be an object/dict")
        data = {PARAM_ALIASES.get(k, k): v for k, v in data.items()}

    # Explicit flags win over the file.
    for name in NUMERIC_FLAGS + ("bounding_box", "tray"):
        v = getattr(args, name)
        if v is not None:
            data[name] = v
    return BoxParams.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    p = load_params(args)
    result = generate(p)
    s = result.size
    log.info("box %.2f x %.2f x %.2f mm, %d paths", s.w, s.d, s.h, len(result.paths))

    warns = check_layout(result)
    for w in warns:
        level = logging.ERROR if w.severity == "error" else logging.WARNING
        log.log(level, "%s %s | fix: %s", w.code, w.message, w.fix)
    if has_errors(warns) and args.strict:
        raise RuntimeError("layout check failed; nothing written")

    out = args.out or f"box.{args.format}"
    kwargs = {}
    if args.format == "dxf":
        kwargs["polylines"] = args.dxf_polylines
    elif args.format == "svg":
        kwargs["labels"] = not args.no_labels
    export(result, args.format, out, **kwargs)
    return 0


if __name__ == "__main__":
    sys.exit(main())
