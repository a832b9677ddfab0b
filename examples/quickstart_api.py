#!/usr/bin/env python3
"""Quickstart example using the high-level compress/decompress API.

This example demonstrates the simplest way to use the SDK:
- Load a grayscale image (or generate a smooth random one)
- Wavelet-transform and ZTW-code it with compress_image()
- Decompress it back with decompress_image(), fully and as a preview
- Compute quality metrics

The high-level API hides all the ECS complexity and provides a simple,
one-line interface for compression and decompression.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np

from ztw_ecs.api import (
    compress_image,
    decompress_image,
    get_compression_info,
    get_compression_ratio,
)


def _load_image(path: Path) -> np.ndarray | None:
    if not path.exists():
        return None
    try:
        from PIL import Image
    except ImportError:
        return None
    image = Image.open(path).convert("L")
    return np.array(image)


def _save_image(path: Path, image: np.ndarray) -> bool:
    try:
        from PIL import Image
    except ImportError:
        return False
    Image.fromarray(image).save(path)
    return True


def _psnr(original: np.ndarray, recon: np.ndarray) -> float:
    mse = float(np.mean((original.astype(np.float64) - recon) ** 2))
    return 10 * np.log10(255.0**2 / mse) if mse > 0 else float("inf")


def main() -> None:
    parser = argparse.ArgumentParser(description="Quickstart API example")
    parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Input image path (converted to grayscale)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("examples/reconstruction_api.png"),
        help="Output path for reconstructed image",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=256,
        help="Random image size if no input image is available",
    )
    parser.add_argument("--levels", type=int, default=5, help="Resolution levels")
    parser.add_argument("--kbits", type=float, default=64.0, help="Target size in kilobits")
    parser.add_argument(
        "--preview-passes",
        type=int,
        default=4,
        help="Passes applied for the progressive preview",
    )
    args = parser.parse_args()

    image = _load_image(args.input) if args.input else None
    if image is None:
        print("No readable input image found; generating random image instead")
        rng = np.random.default_rng(0)
        noise = rng.normal(size=(args.size, args.size))
        image = (np.cumsum(np.cumsum(noise, axis=0), axis=1))
        image = ((image - image.min()) / np.ptp(image) * 255).astype(np.uint8)
    else:
        print(f"Loaded image: {args.input}")

    print("Compressing...")
    compressed = compress_image(image, levels=args.levels, target_kbits=args.kbits)

    info = get_compression_info(compressed)
    ratio = get_compression_ratio(image, compressed)
    print(f"Compressed size: {len(compressed)} bytes")
    print(f"Compression ratio: {ratio:.2f}x")
    print(f"Metadata: passes={info['passes']} bits={info['num_bits']} wavelet={info['wavelet']}")

    print("Decompressing...")
    preview = decompress_image(compressed, max_passes=args.preview_passes)
    recon = decompress_image(compressed)
    print(f"Preview PSNR ({args.preview_passes} passes): {_psnr(image, preview):.2f} dB")
    print(f"Full PSNR ({info['passes']} passes): {_psnr(image, recon):.2f} dB")

    recon_uint8 = recon.clip(0, 255).round().astype(np.uint8)
    if _save_image(args.output, recon_uint8):
        print(f"Reconstruction saved to: {args.output}")
    else:
        print("Pillow not installed; skipping image save")


if __name__ == "__main__":
    main()
