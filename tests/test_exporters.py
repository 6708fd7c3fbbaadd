from datetime import datetime

import ezdxf
import pytest
from ezdxf import units

import boxdesigner as gen
import boxdesigner_export as export


@pytest.fixture
def result():
    p = gen.BoxParams(
        width=100, height=60, depth=40, thickness=3, cut_width=0.2, notch_length=10, bounding_box=True, tray=False
    )
    return gen.generate(p)


def test_drawable_points_drop_closing_duplicate():
    square = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
    assert export.drawable_points(square) == ([(0, 0), (1, 0), (1, 1), (0, 1)], True)
    assert export.drawable_points([(0, 0), (1, 0)]) == ([(0, 0), (1, 0)], False)


def test_dxf_lines_match_segments(tmp_path, result):
    out = tmp_path / "box.dxf"
    export.write_dxf(result, str(out))

    doc = ezdxf.readfile(str(out))
    assert doc.units == units.MM
    lines = doc.modelspace().query("LINE")
    assert len(lines) == len(result.segments)


def test_dxf_polylines_one_closed_entity_per_path(tmp_path, result):
    out = tmp_path / "box.dxf"
    export.write_dxf(result, str(out), polylines=True)

    doc = ezdxf.readfile(str(out))
    polys = doc.modelspace().query("LWPOLYLINE")
    assert len(polys) == len(result.paths)
    assert all(pl.closed for pl in polys)
    assert sum(len(pl) for pl in polys) == sum(len(pth) - 1 for pth in result.paths)


def test_pdf_written(tmp_path, result):
    out = tmp_path / "box.pdf"
    export.write_pdf(result, str(out), now=datetime(2025, 3, 4, 9, 5, 7))

    data = out.read_bytes()
    assert data.startswith(b"%PDF")


def test_pdf_figure_page_matches_doc_size(result):
    fig = export.make_pdf_figure(result, now=datetime(2025, 3, 4, 9, 5, 7))
    w_in, h_in = fig.get_size_inches()
    assert w_in * export.MM_PER_INCH == pytest.approx(result.doc_size.w)
    assert h_in * export.MM_PER_INCH == pytest.approx(result.doc_size.h)

    ax = fig.axes[0]
    assert ax.get_xlim() == pytest.approx((0, result.doc_size.w))
    assert ax.get_ylim() == pytest.approx((0, result.doc_size.h))
    assert len(ax.collections[0].get_segments()) == len(result.segments)
    assert [t.get_text() for t in ax.texts][-1].startswith("Bounding Box")


@pytest.mark.parametrize("fmt_name", ["svg", "dxf", "pdf"])
def test_export_dispatch(tmp_path, result, fmt_name):
    out = tmp_path / f"box.{fmt_name}"
    export.export(result, fmt_name, str(out))
    assert out.stat().st_size > 0


def test_export_unknown_format(tmp_path, result):
    with pytest.raises(ValueError):
        export.export(result, "eps", str(tmp_path / "box.eps"))
