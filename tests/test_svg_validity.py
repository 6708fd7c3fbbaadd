import xml.etree.ElementTree as ET
from datetime import datetime

import boxdesigner as gen
from boxdesigner_export import SVG_GLYPH_WIDTH, fmt, info_lines, make_svg

SVG_NS = "{http://www.w3.org/2000/svg}"


def _result(**overrides):
    base = dict(
        width=135,
        height=45,
        depth=90,
        thickness=3,
        cut_width=0.2,
        notch_length=12,
        bounding_box=False,
        tray=True,
    )
    base.update(overrides)
    return gen.generate(gen.BoxParams(**base))


def test_svg_is_valid_xml(tmp_path):
    # Smoke test: generator should output parseable XML.
    result = _result()
    svg = make_svg(result)

    out = tmp_path / "out.svg"
    out.write_text(svg, encoding="utf-8")
    root = ET.parse(str(out)).getroot()

    assert root.tag == SVG_NS + "svg"
    assert root.get("viewBox") == f"0 0 {fmt(result.doc_size.w)} {fmt(result.doc_size.h)}"
    assert root.get("width") == f"{fmt(result.doc_size.w)}mm"


def test_svg_has_one_path_per_polyline_closed_with_z():
    result = _result(bounding_box=True)
    root = ET.fromstring(make_svg(result))

    cut = [g for g in root.iter(SVG_NS + "g") if g.get("id") == "CUT"][0]
    paths = cut.findall(SVG_NS + "path")
    assert len(paths) == len(result.paths)
    assert all(p.get("d").endswith("Z") for p in paths)


def test_svg_text_layer_optional():
    result = _result()
    now = datetime(2025, 3, 4, 9, 5, 7)

    with_labels = ET.fromstring(make_svg(result, now=now))
    texts = [t.text for t in with_labels.iter(SVG_NS + "text")]
    assert texts == [txt for txt, _, _ in info_lines(result, now=now)]

    without = ET.fromstring(make_svg(result, labels=False))
    assert list(without.iter(SVG_NS + "text")) == []


def test_info_lines_text_and_positions():
    result = _result(tray=False, bounding_box=True, cut_width=0.15, thickness=3.175)
    now = datetime(2025, 3, 4, 9, 5, 7)
    lines = info_lines(result, app_name="Box Designer", app_version="1.2.3", homepage="https://example.org/", now=now)

    texts = [t for t, _, _ in lines]
    s = result.size
    bb = result.bounding_box_size
    assert texts == [
        "Cut Width: 0.1500mm",
        "Material Thickness: 3.1750mm",
        f"W x D x H: {s.w:.2f}mm x {s.d:.2f}mm x {s.h:.2f}mm",
        "Produced by Box Designer v1.2.3 on 3/4/2025 at 09:05:07",
        "https://example.org/",
        f"Bounding Box: {bb.w:.2f}mm x {bb.h:.2f}mm",
    ]
    assert all(x == 15.0 for _, x, _ in lines)
    ys = [y for _, _, y in lines[:5]]
    assert ys[0] == 35.0
    assert ys == sorted(ys, reverse=True)
    assert lines[-1][2] == result.doc_size.h - 20.0


def test_info_lines_skip_bounding_box_when_not_requested():
    result = _result(bounding_box=False)
    assert not any(t.startswith("Bounding Box") for t, _, _ in info_lines(result))


def test_svg_text_is_escaped():
    result = _result()
    homepage = "https://example.org/box?w=1&h=2<3>"
    root = ET.fromstring(make_svg(result, homepage=homepage))

    texts = [t.text for t in root.iter(SVG_NS + "text")]
    assert homepage in texts


def test_svg_text_stays_clear_of_panels():
    for result in (_result(), _result(depth=20, height=25, tray=False, bounding_box=True)):
        root = ET.fromstring(make_svg(result))
        engrave = [g for g in root.iter(SVG_NS + "g") if g.get("id") == "ENGRAVE"][0]
        font = float(engrave.get("font-size"))

        d = result.dimensions
        back_x, _ = gen.panel_origin("BACK", d)
        _, left_y = gen.panel_origin("LEFT", d)
        for t in engrave.findall(SVG_NS + "text"):
            x = float(t.get("x"))
            y = float(t.get("y"))
            assert x >= d.margin
            assert y - font >= d.margin
            assert x + len(t.text) * SVG_GLYPH_WIDTH * font <= back_x + 1e-3
            assert y <= left_y
