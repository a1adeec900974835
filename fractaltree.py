"""
Command line entry point for the fractal tree renderer.

Defaults come from a JSON config file (--config); any flag given on the
command line overrides the file. The rendered tree is written as a PNG
under --output-dir, printed as a data URL, or shown in the Qt viewer.
"""
import argparse
import json
import logging
import os
import sys

from fractal_worker import (
    FractalTreeParams, export_fractal, generate_fractal_image, image_to_data_url,
)
from logging_config import LOG_LEVELS, setup_logging

logger = logging.getLogger(__name__)


def load_config(path):
    if not path or not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"config {path} must contain a JSON object")
    return data


def build_parser(config):
    defaults = FractalTreeParams().to_dict()
    defaults.update(config)

    parser = argparse.ArgumentParser(description="Render a random fractal tree to a PNG image")
    parser.add_argument("--config", type=str, default="fractal_config.json", help="JSON config file")
    parser.add_argument("--depth", type=int, default=defaults["depth"], help="Recursion depth")
    parser.add_argument("--width", type=int, default=defaults["width"])
    parser.add_argument("--height", type=int, default=defaults["height"])
    parser.add_argument("--seed", type=int, default=defaults["seed"],
                        help="Random seed (omit for a different tree every run)")
    parser.add_argument("--branch-unit", type=int, default=defaults["branch_unit"],
                        help="Branch length per depth level")
    parser.add_argument("--spread-min", type=int, default=defaults["spread_min"],
                        help="Smallest angle offset between parent and child branch")
    parser.add_argument("--spread-max", type=int, default=defaults["spread_max"],
                        help="Largest angle offset between parent and child branch")
    parser.add_argument("--leaf-depth", type=int, default=defaults["leaf_depth"],
                        help="Branches shallower than this get random leaf colors")
    parser.add_argument("--background", type=str, default=defaults["background"],
                        help="#RRGGBB, #RRGGBBAA or 'transparent'")
    parser.add_argument("--signature", type=str, default=defaults["signature"],
                        help="Caption drawn in the bottom right corner")
    parser.add_argument("--output-dir", type=str, default=config.get("output_dir", "output"))
    parser.add_argument("--prefix", type=str, default=config.get("prefix", "fractal"))
    parser.add_argument("--data-url", action="store_true",
                        help="Print a PNG data URL instead of writing a file")
    parser.add_argument("--show", action="store_true", help="Open the result in the Qt viewer")
    parser.add_argument("--log-level", type=str.upper, default=config.get("log_level", "INFO"),
                        choices=LOG_LEVELS)
    parser.add_argument("--log-file", type=str, default=config.get("log_file"))
    return parser


def params_from_args(args):
    return FractalTreeParams(
        depth=args.depth,
        width=args.width,
        height=args.height,
        seed=args.seed,
        branch_unit=args.branch_unit,
        spread_min=args.spread_min,
        spread_max=args.spread_max,
        leaf_depth=args.leaf_depth,
        background=args.background,
        signature=args.signature,
    )


def main(argv=None) -> int:
    config_parser = argparse.ArgumentParser(add_help=False)
    config_parser.add_argument("--config", type=str, default="fractal_config.json")
    config_args, _ = config_parser.parse_known_args(argv)

    try:
        config = load_config(config_args.config)
    except (OSError, ValueError) as e:
        print(f"error: could not read config: {e}", file=sys.stderr)
        return 2

    args = build_parser(config).parse_args(argv)
    try:
        setup_logging(args.log_level, args.log_file)
    except (OSError, ValueError) as e:
        print(f"error: could not set up logging: {e}", file=sys.stderr)
        return 2

    try:
        params = params_from_args(args)
    except ValueError as e:
        logger.error("invalid parameters: %s", e)
        return 2

    if args.show:
        import fractal_qt
        return fractal_qt.main(params)

    if args.data_url:
        print(image_to_data_url(generate_fractal_image(params)))
        return 0

    filename = export_fractal(params, prefix=args.prefix, output_dir=args.output_dir)
    print(filename)
    return 0


if __name__ == "__main__":
    sys.exit(main())
