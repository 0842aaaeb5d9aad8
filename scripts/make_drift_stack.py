from __future__ import annotations

import argparse
import csv
from pathlib import Path

import numpy as np
from PIL import Image


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write a synthetic drifting stack for trying the aligner.")
    parser.add_argument("--out-dir", default="demo", help="Output directory.")
    parser.add_argument("--slices", type=int, default=10, help="Number of slices.")
    parser.add_argument("--size", type=int, nargs=2, default=(256, 192), metavar=("W", "H"))
    parser.add_argument("--max-step", type=int, default=2, help="Largest per-slice drift in pixels.")
    parser.add_argument("--seed", type=int, default=0)
    return parser.parse_args()


def random_walk(count: int, max_step: int, rng: np.random.Generator) -> np.ndarray:
    steps = rng.integers(-max_step, max_step + 1, size=(count, 2))
    steps[0] = 0
    return np.cumsum(steps, axis=0)


def main() -> int:
    args = _parse_args()
    rng = np.random.default_rng(args.seed)
    width, height = args.size

    yy, xx = np.mgrid[0:height, 0:width]
    base = np.zeros((height, width), dtype=np.float32)
    for _ in range(40):
        cx, cy = rng.uniform(0, width), rng.uniform(0, height)
        sigma = rng.uniform(2.0, 8.0)
        base += rng.uniform(50, 200) * np.exp(-((xx - cx) ** 2 + (yy - cy) ** 2) / (2 * sigma**2))
    base = np.clip(base + rng.normal(0, 3, size=base.shape), 0, 255).astype(np.uint8)

    drift = random_walk(args.slices, args.max_step, rng)
    pages = [Image.fromarray(np.roll(base, (-int(dy), -int(dx)), axis=(0, 1))) for dx, dy in drift]

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    pages[0].save(out_dir / "drift.tif", save_all=True, append_images=pages[1:])

    with open(out_dir / "drift.csv", "w", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["slice", "dx", "dy"])
        for idx, (dx, dy) in enumerate(drift, start=1):
            writer.writerow([idx, int(dx), int(dy)])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
