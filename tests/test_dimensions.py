import dataclasses
import math

import pytest

import boxdesigner as gen


def _params(**overrides):
    base = dict(
        width=100.0,
        height=60.0,
        depth=40.0,
        thickness=3.0,
        cut_width=0.2,
        notch_length=10.0,
        bounding_box=False,
        tray=False,
    )
    base.update(overrides)
    return gen.BoxParams(**base)


def test_closest_odd_rounds_half_up_then_steps_down():
    assert gen.closest_odd(10.0) == 9
    assert gen.closest_odd(9.4) == 9
    assert gen.closest_odd(2.5) == 3  # round(2.5) would give 2 -> 1
    assert gen.closest_odd(3.5) == 3
    assert gen.closest_odd(0.4) == -1


def test_reference_box_dimensions():
    d = gen.compute_dimensions(_params())

    assert (d.num_notches.w, d.num_notches.h, d.num_notches.d) == (9, 5, 3)
    assert d.size.w == pytest.approx(100.2)
    assert d.size.h == pytest.approx(60.2)
    assert d.size.d == pytest.approx(40.2)
    assert d.notch_length.w == pytest.approx(100.2 / 9)
    assert d.margin == pytest.approx(10.2)
    assert d.doc_size.w == pytest.approx(180.6 + 4 * 10.2)
    assert d.doc_size.h == pytest.approx(200.8 + 5 * 10.2)
    assert d.bounding_box_size.w == pytest.approx(180.6 + 2 * 10.2)
    assert d.bounding_box_size.h == pytest.approx(200.8 + 3 * 10.2)


@pytest.mark.parametrize(
    "width,height,depth,notch",
    [
        (100, 60, 40, 10),
        (25, 25, 25, 10),
        (5, 7, 3, 10),
        (333.3, 12.7, 88.8, 6.35),
        (70, 120, 95, 12),
    ],
)
def test_notch_counts_odd_and_size_is_exact_multiple(width, height, depth, notch):
    d = gen.compute_dimensions(_params(width=width, height=height, depth=depth, notch_length=notch))
    for axis in ("w", "h", "d"):
        n = d.num_notches.axis(axis)
        assert n >= 1
        assert n % 2 == 1
        assert d.size.axis(axis) == pytest.approx(n * d.notch_length.axis(axis))


def test_size_only_differs_from_kerf_grown_length_by_quantization():
    p = _params(width=123.0, cut_width=0.15)
    d = gen.compute_dimensions(p)
    assert d.size.w == pytest.approx(123.15)


def test_doc_size_is_bounding_box_plus_two_margins():
    d = gen.compute_dimensions(_params(width=210, height=33, depth=71, cut_width=0.3))
    assert d.doc_size.w == pytest.approx(d.bounding_box_size.w + 2 * d.margin)
    assert d.doc_size.h == pytest.approx(d.bounding_box_size.h + 2 * d.margin)


def test_short_axis_clamps_to_one_notch():
    d = gen.compute_dimensions(_params(depth=3.0))
    assert d.num_notches.d == 1
    assert d.notch_length.d == pytest.approx(3.2)


@pytest.mark.parametrize(
    "field,value",
    [
        ("width", 0.0),
        ("height", -5.0),
        ("depth", math.nan),
        ("thickness", 0.0),
        ("notch_length", 0.0),
        ("notch_length", math.inf),
        ("cut_width", -0.1),
    ],
)
def test_invalid_params_rejected(field, value):
    with pytest.raises(ValueError):
        _params(**{field: value})


def test_zero_cut_width_allowed():
    d = gen.compute_dimensions(_params(cut_width=0.0))
    assert d.size.w == pytest.approx(100.0)
    assert d.margin == pytest.approx(10.0)


def test_params_are_immutable():
    p = _params()
    with pytest.raises(dataclasses.FrozenInstanceError):
        p.width = 5.0


def test_from_dict_accepts_camel_case_keys():
    p = gen.BoxParams.from_dict(
        {
            "width": 100,
            "height": 60,
            "depth": 40,
            "thickness": 3,
            "cutWidth": 0.2,
            "notchLength": 10,
            "boundingBox": True,
        }
    )
    assert p.cut_width == 0.2
    assert p.notch_length == 10.0
    assert p.bounding_box is True
    assert p.tray is False


def test_from_dict_rejects_unknown_and_missing_keys():
    with pytest.raises(TypeError):
        gen.BoxParams.from_dict({"width": 1, "colour": "red"})
    with pytest.raises(ValueError):
        gen.BoxParams.from_dict({"width": 1, "height": 2})
