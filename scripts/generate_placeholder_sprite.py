#!/usr/bin/env python3
"""Generate a placeholder fish sprite (RGBA PNG) for local development."""
from __future__ import annotations

import argparse
import struct
import zlib
from pathlib import Path


def fish_pixels(width: int, height: int, color: tuple[int, int, int]) -> list[bytes]:
    """Rows of RGBA pixels: an elliptical body with a tail, facing right."""
    r, g, b = color
    cx, cy = width * 0.58, height / 2
    rx, ry = width * 0.38, height * 0.36
    tail_start = width * 0.22
    rows = []
    for y in range(height):
        row = bytearray()
        for x in range(width):
            dx = (x + 0.5 - cx) / rx
            dy = (y + 0.5 - cy) / ry
            in_body = dx * dx + dy * dy <= 1.0
            # Triangle tail opening to the left.
            spread = (tail_start - x) / tail_start * height * 0.45 if x < tail_start else -1.0
            in_tail = abs(y + 0.5 - cy) <= spread
            if in_body or in_tail:
                row += bytes([r, g, b, 255])
            else:
                row += bytes([0, 0, 0, 0])
        rows.append(bytes(row))
    return rows


def build_png(width: int, height: int, color: tuple[int, int, int]) -> bytes:
    raw = b"".join(b"\x00" + row for row in fish_pixels(width, height, color))
    compressed = zlib.compress(raw)

    def chunk(chunk_type: bytes, data: bytes) -> bytes:
        return (
            struct.pack(">I", len(data))
            + chunk_type
            + data
            + struct.pack(">I", zlib.crc32(chunk_type + data) & 0xFFFFFFFF)
        )

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", compressed) + chunk(
        b"IEND", b""
    )


def write_asset(path: Path, data: bytes, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(f"{path} already exists. Use --overwrite to replace.")
    path.write_bytes(data)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a placeholder fish sprite.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("img"),
        help="Directory to write the sprite into.",
    )
    parser.add_argument("--name", default="poisson.png", help="File name of the sprite.")
    parser.add_argument("--width", type=int, default=64)
    parser.add_argument("--height", type=int, default=32)
    parser.add_argument(
        "--overwrite", action="store_true", help="Overwrite existing files."
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    output_dir: Path = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    target = output_dir / args.name
    write_asset(target, build_png(args.width, args.height, (240, 140, 60)), args.overwrite)

    print(f"Generated placeholder sprite {target}")


if __name__ == "__main__":
    main()
