#!/usr/bin/env python3

import argparse
import io
import json
import re
import sys
import zipfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Tuple

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from boxdesigner import BoxParams, BoxResult, WarningMsg, check_layout, generate
from boxdesigner_export import make_dxf, make_svg


EXPECTED_ZIP_FILES = {
    "cut.svg",
    "cut.dxf",
    "project_summary.md",
}

NAME_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


@dataclass
class Case:
    name: str
    params: BoxParams
    source_file: Path


def _read_case(path: Path) -> Case:
    data = json.loads(path.read_text(encoding="utf-8"))
    name = str(data.get("name", "")).strip()
    params = data.get("params")
    if not NAME_RE.match(name):
        raise ValueError(f"{path}: case name must be [A-Za-z0-9_-]+, got {name!r}")
    if not isinstance(params, dict):
        raise TypeError(f"{path}: params must be an object/dict")
    return Case(name=name, params=BoxParams.from_dict(params), source_file=path)


def _iter_cases(params_dir: Path) -> List[Case]:
    if not params_dir.exists():
        raise FileNotFoundError(f"Params dir not found: {params_dir}")

    cases = [_read_case(p) for p in sorted(params_dir.glob("*.json"))]
    if not cases:
        raise FileNotFoundError(f"No *.json found in: {params_dir}")
    return cases


def _build_project_summary_md(case: Case, result: BoxResult, warnings: List[WarningMsg]) -> str:
    d = result.dimensions
    lines = [
        "# Box Designer Project Summary\n",
        f"Case: **{case.name}**\n",
        "## Parameters",
        "```json",
        json.dumps(case.params.to_dict(), indent=2, sort_keys=True),
        "```\n",
        "## Computed",
        f"- Size (W x D x H): {d.size.w:.2f} x {d.size.d:.2f} x {d.size.h:.2f} mm",
        f"- Notches (W / D / H): {d.num_notches.w} / {d.num_notches.d} / {d.num_notches.h}",
        f"- Document: {d.doc_size.w:.2f} x {d.doc_size.h:.2f} mm",
        f"- Segments: {len(result.segments)}, paths: {len(result.paths)}",
        "",
    ]
    if warnings:
        lines.append("## Findings")
        lines.extend(f"- {w.severity} {w.code}: {w.message}" for w in warnings)
        lines.append("")
    return "\n".join(lines)


def _dxf_text(result: BoxResult) -> str:
    doc = make_dxf(result)
    buf = io.StringIO()
    doc.write(buf)
    return buf.getvalue()


def _write_zip(out_path: Path, *, case: Case, result: BoxResult, warnings: List[WarningMsg]) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        z.writestr("cut.svg", make_svg(result))
        z.writestr("cut.dxf", _dxf_text(result))
        z.writestr("project_summary.md", _build_project_summary_md(case, result, warnings))

    with zipfile.ZipFile(out_path, "r") as z:
        names = set(z.namelist())
        if names != EXPECTED_ZIP_FILES:
            missing = sorted(EXPECTED_ZIP_FILES - names)
            extra = sorted(names - EXPECTED_ZIP_FILES)
            raise ValueError(f"{case.name}: zip contents mismatch. Missing={missing} Extra={extra} ({out_path})")


def main(argv: List[str]) -> int:
    ap = argparse.ArgumentParser(description="Generate and check regression packs (ZIP) for box parameter cases.")
    ap.add_argument(
        "--params-dir",
        default="examples/regression_params",
        help="Directory containing *.json files with {name, params} (default: %(default)s)",
    )
    ap.add_argument(
        "--out-dir",
        default="artifacts/regression",
        help="Output directory for generated ZIPs (default: %(default)s)",
    )
    ap.add_argument(
        "--date",
        default=None,
        help="Override date (YYYYMMDD) for deterministic filenames; default is today.",
    )
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Fail a case when the layout check reports errors (default: list them in the summary)",
    )
    args = ap.parse_args(argv)

    params_dir = Path(args.params_dir)
    out_dir = Path(args.out_dir)

    if args.date:
        ymd = str(args.date).strip()
        if not (len(ymd) == 8 and ymd.isdigit()):
            raise ValueError("--date must be YYYYMMDD")
    else:
        ymd = date.today().strftime("%Y%m%d")

    cases = _iter_cases(params_dir)

    failures: List[Tuple[str, str]] = []
    for c in cases:
        try:
            result = generate(c.params)
            warnings = check_layout(result)
            errors = [w.code for w in warnings if w.severity == "error"]
            if errors and args.strict:
                raise ValueError(f"Blocking errors returned: {errors}")

            out_path = out_dir / f"BoxDesigner_{c.name}_{ymd}.zip"
            _write_zip(out_path, case=c, result=result, warnings=warnings)

            if errors:
                print(f"OK  {c.name} -> {out_path} (layout errors: {errors})")
            else:
                print(f"OK  {c.name} -> {out_path}")
        except Exception as e:
            failures.append((c.name, str(e)))
            print(f"FAIL {c.name}: {e}", file=sys.stderr)

    if failures:
        print("\nFailures:", file=sys.stderr)
        for name, msg in failures:
            print(f"- {name}: {msg}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
