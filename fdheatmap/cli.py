#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Local box-counting fractal dimension heatmaps for grayscale images.

Every pixel of the standardized (cropped/zero-padded) image gets the
box-counting dimension of the binarized window around it. The field is
then rendered as a false-colour PNG.

Usage examples:
  python -m fdheatmap --image sample.png --out-dir out
  python -m fdheatmap --image sample.png --threshold otsu --palette gradient --out-dir out
  python -m fdheatmap --image sample.png --size 256 --neighborhood 16 --min-box 1 --occupancy all --palette-max 6
  python -m fdheatmap --image sample.png --engine direct --workers 4 --progress
  python -m fdheatmap --image sample.png --global --plot --write-matrix
"""
import argparse
import json
import logging
import os
from datetime import datetime, timezone

import numpy as np
from colorama import Fore, Style, init as colorama_init

from .boxcount import global_fractal_dimension
from .config import ENGINES, OCCUPANCY_RULES, PALETTES, RESPONSE_DATA, THRESHOLD_METHODS, FractalConfig
from .errors import FractalError
from .pipeline import process_image, write_field_matrix


def save_loglog_plot(points, dim, r2, path):
    import matplotlib.pyplot as plt

    x = np.array([p[0] for p in points])
    y = np.array([p[1] for p in points])
    slope, intercept = np.polyfit(x, y, 1)
    fig, ax = plt.subplots(figsize=(6, 5), dpi=150)
    ax.plot(x, y, "o", ms=4, color="tab:blue", label="data")
    xx = np.linspace(x.min(), x.max(), 200)
    ax.plot(xx, slope * xx + intercept, label=f"fit: D={dim:.4f}, R²={r2:.4f}")
    ax.set_xlabel("log(box size)")
    ax.set_ylabel("log N(box size)")
    ax.legend()
    ax.grid(True, which="both", linewidth=0.5, alpha=0.5)
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    fig.text(0.01, 0.01, f"fdheatmap · {stamp}", fontsize=6, color="#555", alpha=0.7)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def build_parser():
    ap = argparse.ArgumentParser(description="Local box-counting fractal dimension heatmap.")
    ap.add_argument("--image", required=True, help="Path to input image (png/jpg/tiff...).")
    ap.add_argument("--out-dir", default="fdheatmap_output", help="Directory for the heatmap and response files.")
    ap.add_argument("--size", type=int, default=1024, help="Standardized square size S (crop/zero-pad).")
    ap.add_argument("--neighborhood", type=int, default=32, help="Neighborhood side length N.")
    ap.add_argument("--scaling-factor", type=int, default=2, help="Box size growth factor k.")
    ap.add_argument("--min-box", type=int, default=2, help="Smallest box size in pixels.")
    ap.add_argument("--threshold", choices=THRESHOLD_METHODS, default="fixed", help="Binarization method.")
    ap.add_argument("--fixed-thresh", type=int, default=113, help="Fixed threshold (0..255) if --threshold fixed.")
    ap.add_argument("--foreground", type=int, choices=[1, 255], default=1, help="Value written for foreground pixels.")
    ap.add_argument("--occupancy", choices=OCCUPANCY_RULES, default="any", help="Box occupancy rule")
    ap.add_argument("--palette", choices=PALETTES, default="discrete", help="Heatmap colour mapping.")
    ap.add_argument("--palette-min", type=float, default=0.0, help="Lowest dimension covered by the palette.")
    ap.add_argument("--palette-max", type=float, default=2.0,
                    help="Highest dimension covered by the palette (raise it for --occupancy all).")
    ap.add_argument("--engine", choices=ENGINES, default="integral",
                    help="'integral' (summed-area table) or 'direct' (per-pixel windows).")
    ap.add_argument("--workers", type=int, default=1, help="Process pool size for --engine direct.")
    ap.add_argument("--response-data", choices=RESPONSE_DATA, default="field",
                    help="Matrix returned in response.json: the dimension field or the grayscale grid.")
    ap.add_argument("--write-matrix", action="store_true", help="Also write the field as a space-separated text matrix.")
    ap.add_argument("--global", dest="global_dim", action="store_true",
                    help="Also compute one fractal dimension for the whole binarized grid.")
    ap.add_argument("--global-max-box", type=int, default=64, help="Largest box size (exclusive) for --global.")
    ap.add_argument("--plot", action="store_true", help="Save a log-log plot of the global box counts (implies --global).")
    ap.add_argument("--progress", action="store_true", help="Show progress bars")
    ap.add_argument("--verbose", action="store_true", help="Debug logging")
    return ap


def run(args):
    OK = Fore.GREEN + "[ok]" + Style.RESET_ALL
    INFO = Fore.CYAN + "[info]" + Style.RESET_ALL
    RES = Fore.GREEN + "[result]" + Style.RESET_ALL

    image_path = args.image
    if not os.path.exists(image_path):
        alt = os.path.join("in", image_path)
        if os.path.exists(alt):
            image_path = alt
    if not os.path.exists(image_path):
        raise FractalError(f"Image not found: {args.image}")
    if os.path.isdir(image_path):
        raise FractalError(f"Provided path is a directory, not a file: {image_path}")

    config = FractalConfig(
        size=args.size,
        neighborhood_size=args.neighborhood,
        scaling_factor=args.scaling_factor,
        min_box=args.min_box,
        threshold=args.threshold,
        fixed_thresh=args.fixed_thresh,
        foreground=args.foreground,
        occupancy=args.occupancy,
        palette=args.palette,
        palette_min=args.palette_min,
        palette_max=args.palette_max,
        engine=args.engine,
        workers=args.workers,
        response_data=args.response_data,
        global_max_box=args.global_max_box,
    )
    print(f"{INFO} box sizes: {', '.join(map(str, config.sizes))} (N={config.neighborhood_size})")

    os.makedirs(args.out_dir, exist_ok=True)
    response, result = process_image(image_path, args.out_dir, config, progress=args.progress)
    heatmap_path = os.path.join(args.out_dir, response["heatmapImageSourceName"])
    print(f"{OK} Heatmap: {heatmap_path}")

    meta = {
        "image": args.image,
        "config": config.to_dict(),
        "field": {
            "min": float(result.field.min()),
            "max": float(result.field.max()),
            "mean": float(result.field.mean()),
        },
        "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    }

    if args.global_dim or args.plot:
        dim, points, fit = global_fractal_dimension(result.binary, config.min_box, config.scaling_factor,
                                                    occupancy=config.occupancy, max_box=config.global_max_box)
        meta["global"] = {"D": float(dim), "R2": float(fit.r2), "points": [list(p) for p in points]}
        print(f"{RES} global D = {Fore.MAGENTA}{dim:.6f}{Style.RESET_ALL} (R^2={fit.r2:.4f}, points={fit.n})")
        if args.plot:
            plot_path = os.path.join(args.out_dir, "loglog.png")
            save_loglog_plot(points, dim, fit.r2, plot_path)
            print(f"{OK} Plot: {plot_path}")

    if args.write_matrix:
        matrix_path = write_field_matrix(result.field, os.path.join(args.out_dir, "matrix.txt"))
        print(f"{OK} Matrix: {matrix_path}")

    response_path = os.path.join(args.out_dir, "response.json")
    with open(response_path, "w", encoding="utf-8") as fj:
        json.dump({"response": response, "meta": meta}, fj)
    print(f"{OK} Response: {response_path}")
    print(f"{RES} field D range {meta['field']['min']:.4f}..{meta['field']['max']:.4f}, "
          f"mean {meta['field']['mean']:.4f}")
    return response


def main(argv=None):
    args = build_parser().parse_args(argv)
    colorama_init(autoreset=True)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ERR = Fore.RED + "[error]" + Style.RESET_ALL
    try:
        run(args)
    except (FractalError, ValueError) as e:
        raise SystemExit(f"{ERR} {e}")


if __name__ == "__main__":
    main()
