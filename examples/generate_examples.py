#!/usr/bin/env python3

import os
import sys

# Allow running this script directly (sys.path[0] is examples/).
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import boxdesigner as gen
import boxdesigner_export as export


def generate(out_dir: str):
    os.makedirs(out_dir, exist_ok=True)

    examples = [
        (
            "box",
            gen.BoxParams(
                width=100,
                height=60,
                depth=40,
                thickness=3,
                cut_width=0.2,
                notch_length=10,
                bounding_box=False,
                tray=False,
            ),
        ),
        (
            "tray",
            gen.BoxParams(
                width=135,
                height=45,
                depth=90,
                thickness=3,
                cut_width=0.2,
                notch_length=12,
                bounding_box=False,
                tray=True,
            ),
        ),
        (
            "box_bounding_box",
            gen.BoxParams(
                width=80,
                height=80,
                depth=80,
                thickness=4,
                cut_width=0.15,
                notch_length=15,
                bounding_box=True,
                tray=False,
            ),
        ),
    ]

    for name, params in examples:
        result = gen.generate(params)
        for fmt_name in export.EXPORTERS:
            export.export(result, fmt_name, os.path.join(out_dir, f"{name}.{fmt_name}"))


if __name__ == "__main__":
    generate(os.path.join(os.path.dirname(__file__)))
