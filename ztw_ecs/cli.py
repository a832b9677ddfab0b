"""Command-line interface: ``python -m ztw_ecs``.

Sub-commands operate on coefficient grids stored as ``.npy`` files:

    python -m ztw_ecs encode coeffs.npy coeffs.ztw --levels 4 --kbits 64
    python -m ztw_ecs decode coeffs.ztw recon.npy --max-passes 6
    python -m ztw_ecs info coeffs.ztw
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

import numpy as np
from pydantic import ValidationError

from ztw_ecs.api import compress, decompress, get_compression_info, get_compression_ratio

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ztw_ecs",
        description="Progressive zero-tree wavelet coding of coefficient grids",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encode", help="Compress a .npy coefficient grid")
    enc.add_argument("input", help="Input .npy file with an (H, W) grid")
    enc.add_argument("output", help="Output container file")
    enc.add_argument("--levels", type=int, default=None, help="Resolution levels")
    enc.add_argument("--kbits", type=float, default=None, help="Target size in kilobits")
    enc.add_argument("--max-passes", type=int, default=None, help="Maximum number of passes")
    enc.add_argument("--config", default=None, help="Path to ztw_ecs.toml")

    dec = sub.add_parser("decode", help="Reconstruct a grid from a container")
    dec.add_argument("input", help="Input container file")
    dec.add_argument("output", help="Output .npy file")
    dec.add_argument("--max-passes", type=int, default=None, help="Apply at most this many passes")

    info = sub.add_parser("info", help="Print container metadata as JSON")
    info.add_argument("input", help="Input container file")

    return parser


def _encode(args: argparse.Namespace) -> None:
    grid = np.load(args.input)
    data = compress(
        grid,
        levels=args.levels,
        target_kbits=args.kbits,
        max_passes=args.max_passes,
        config_path=args.config,
    )
    with open(args.output, "wb") as f:
        f.write(data)
    logger.info(
        "Wrote %s (%d bytes, ratio %.2f)",
        args.output,
        len(data),
        get_compression_ratio(grid, data),
    )


def _decode(args: argparse.Namespace) -> None:
    with open(args.input, "rb") as f:
        data = f.read()
    recon = decompress(data, max_passes=args.max_passes)
    np.save(args.output, recon)
    logger.info("Wrote %s with shape %s", args.output, recon.shape)


def _info(args: argparse.Namespace) -> None:
    with open(args.input, "rb") as f:
        data = f.read()
    print(json.dumps(get_compression_info(data), indent=2))


_COMMANDS = {"encode": _encode, "decode": _decode, "info": _info}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        _COMMANDS[args.command](args)
    except (OSError, ValueError, TypeError, ValidationError) as exc:
        print(f"ztw_ecs {args.command}: error: {exc}", file=sys.stderr)
        return 1
    return 0
