#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
sweep360.py — sweep scales m and test the 360-prime pattern at each one

For every m in [min_m, max_m] the primes of ((m-1)*360, m*360] are checked
against the divisors of m*360 and the sequence Seq((m-1)*360+181, +i), both
with tolerance k. Scales run in batches; inside a batch they run in parallel
processes. Reports are printed in ascending m.

Examples:
  python sweep360.py --max-m 10
  python sweep360.py --min-m 1000 --max-m 2000 --max-k 120 --workers 8
  python sweep360.py --max-m 50 --max-k 0 --json
  python sweep360.py --max-m 200 --plot-file coverage.png
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence

from coverage360 import DEFAULT_MAX_K, DEFAULT_MAX_PRIMES, ScaleReport, evaluate_scale
from primes360 import approx_physical_workers

log = logging.getLogger("sweep360")

DEFAULT_BATCH_SIZE = 10
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class SweepConfig:
    min_m: int
    max_m: int
    max_k: int = DEFAULT_MAX_K
    max_primes: int = DEFAULT_MAX_PRIMES
    batch_size: int = DEFAULT_BATCH_SIZE
    workers: int = 1
    json: bool = False
    quiet: bool = False
    plot: bool = False
    plot_file: Optional[str] = None

    @property
    def scale_count(self) -> int:
        return self.max_m - self.min_m + 1


@dataclass
class SweepSummary:
    scales: int
    primes_checked: int
    missed: int
    scales_with_misses: List[int]
    sampled_scales: List[int]
    wall_s: float

    def pretty(self) -> str:
        lines = [
            f"Scales checked: {self.scales}",
            f"Primes checked: {self.primes_checked}",
            f"Primes missed: {self.missed}",
        ]
        if self.scales_with_misses:
            shown = self.scales_with_misses[:20]
            more = "" if len(self.scales_with_misses) <= 20 else f" (+{len(self.scales_with_misses) - 20} more)"
            lines.append(f"Scales with misses: {shown}{more}")
        if self.sampled_scales:
            lines.append(f"Scales with sampled (approximate) prime sets: {len(self.sampled_scales)}")
        lines.append(f"Total execution time: {self.wall_s:.2f}s")
        return "\n".join(lines)


def summarize(reports: Sequence[ScaleReport], wall_s: float) -> SweepSummary:
    return SweepSummary(
        scales=len(reports),
        primes_checked=sum(r.primes_checked for r in reports),
        missed=sum(r.uncovered for r in reports),
        scales_with_misses=[r.m for r in reports if not r.all_covered],
        sampled_scales=[r.m for r in reports if r.sampled],
        wall_s=wall_s,
    )


# ---------- batching ----------
def batches(min_m: int, max_m: int, size: int) -> List[range]:
    out = []
    m = min_m
    while m <= max_m:
        end = min(m + size - 1, max_m)
        out.append(range(m, end + 1))
        m = end + 1
    return out


def run_batch(scales: range, cfg: SweepConfig) -> List[ScaleReport]:
    """Evaluate one batch; reports come back sorted by m."""
    if cfg.workers > 1 and len(scales) > 1:
        reports = []
        with ProcessPoolExecutor(max_workers=min(cfg.workers, len(scales))) as ex:
            futs = [ex.submit(evaluate_scale, m, cfg.max_k, cfg.max_primes) for m in scales]
            for fut in as_completed(futs):
                reports.append(fut.result())
        reports.sort(key=lambda r: r.m)
        return reports
    return [evaluate_scale(m, cfg.max_k, cfg.max_primes, workers=cfg.workers) for m in scales]


def emit(report: ScaleReport, cfg: SweepConfig) -> None:
    if cfg.json:
        print(report.to_json(), flush=True)
    elif not cfg.quiet:
        print("\n" + report.pretty(), flush=True)
    elif not report.all_covered:
        print(f"[m={report.m}] missed {report.uncovered}: {report.missed_preview()}", flush=True)


def run_sweep(cfg: SweepConfig) -> List[ScaleReport]:
    reports: List[ScaleReport] = []
    chatty = not (cfg.json or cfg.quiet)
    done = 0
    for batch in batches(cfg.min_m, cfg.max_m, cfg.batch_size):
        if chatty:
            print(f"\nProcessing batch: m={batch[0]} to m={batch[-1]}", flush=True)
        t0 = time.perf_counter()
        results = run_batch(batch, cfg)
        for r in results:
            emit(r, cfg)
        reports.extend(results)
        done += len(batch)
        batch_s = time.perf_counter() - t0
        if chatty:
            print(f"\nBatch completed in: {batch_s:.2f}s", flush=True)
            remaining = cfg.scale_count - done
            if remaining > 0:
                est = batch_s / len(batch) * remaining
                print(f"Estimated remaining time: {est:.1f}s", flush=True)
    return reports


# ---------- plotting ----------
def plot_coverage(reports: Sequence[ScaleReport], path: Optional[str] = None, show: bool = True):
    import matplotlib.pyplot as plt

    ms = [r.m for r in reports]
    div = [r.divisor_covered for r in reports]
    seq = [r.sequence_covered for r in reports]
    miss = [r.uncovered for r in reports]
    k = reports[0].k if reports else DEFAULT_MAX_K

    fig, ax = plt.subplots(figsize=(12, 7))
    ax.bar(ms, div, color="#1f77b4", label="near divisors of m·360")
    ax.bar(ms, seq, bottom=div, color="#2ca02c", label="near Seq((m-1)·360+181, +i)")
    ax.bar(ms, miss, bottom=[a + b for a, b in zip(div, seq)], color="#d62728", label="missed")
    ax.set_title(f"360-prime pattern coverage per scale (k = {k})", fontsize=16)
    ax.set_xlabel("Scale m", fontsize=14)
    ax.set_ylabel("Primes in ((m-1)·360, m·360]", fontsize=14)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=12)
    fig.tight_layout()
    if path:
        fig.savefig(path, dpi=200)
        print(f"Coverage chart saved to {path}")
    if show:
        plt.show()
    return fig


# ---------- CLI ----------
def positive_int(s: str) -> int:
    try:
        v = int(s)
        if v <= 0:
            raise ValueError
        return v
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a positive integer (got {s!r})")


def non_negative_int(s: str) -> int:
    try:
        v = int(s)
        if v < 0:
            raise ValueError
        return v
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer (got {s!r})")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="sweep360",
        description="Test whether every prime in ((m-1)*360, m*360] lies within k of a divisor of m*360 "
                    "or of a term of Seq((m-1)*360+181, +i).",
    )
    ap.add_argument("--min-m", type=positive_int, default=1, help="first scale (default 1)")
    ap.add_argument("--max-m", type=positive_int, default=10, help="last scale (default 10)")
    ap.add_argument("--max-primes", type=positive_int, default=DEFAULT_MAX_PRIMES,
                    help=f"cap on primes checked per scale (default {DEFAULT_MAX_PRIMES:,})")
    ap.add_argument("--max-k", type=non_negative_int, default=DEFAULT_MAX_K,
                    help=f"tolerance k (default {DEFAULT_MAX_K})")
    ap.add_argument("--batch-size", type=positive_int, default=DEFAULT_BATCH_SIZE,
                    help=f"scales per batch (default {DEFAULT_BATCH_SIZE})")
    ap.add_argument("--workers", type=positive_int, help="processes (default = physical cores)")
    ap.add_argument("--json", action="store_true", help="one JSON report per line")
    ap.add_argument("--quiet", action="store_true", help="only print misses and the summary")
    ap.add_argument("--verbose", action="store_true", help="debug logging")
    ap.add_argument("--plot", action="store_true", help="show a coverage chart when finished")
    ap.add_argument("--plot-file", help="save the coverage chart to this path")
    return ap


def config_from_args(args: argparse.Namespace) -> SweepConfig:
    min_m, max_m = args.min_m, args.max_m
    if min_m > max_m:
        min_m, max_m = max_m, min_m
    return SweepConfig(
        min_m=min_m,
        max_m=max_m,
        max_k=args.max_k,
        max_primes=args.max_primes,
        batch_size=args.batch_size,
        workers=args.workers or approx_physical_workers(),
        json=args.json,
        quiet=args.quiet,
        plot=args.plot,
        plot_file=args.plot_file,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet or args.json else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    cfg = config_from_args(args)

    log.info("Starting prime pattern check from scale m=%d to m=%d", cfg.min_m, cfg.max_m)
    log.info("Using MAX_K = %d, at most %d primes per range, %d workers", cfg.max_k, cfg.max_primes, cfg.workers)

    t0 = time.perf_counter()
    try:
        reports = run_sweep(cfg)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr, flush=True)
        return 130
    summary = summarize(reports, time.perf_counter() - t0)

    if not cfg.json:
        print("\n" + summary.pretty(), flush=True)
    if cfg.plot or cfg.plot_file:
        plot_coverage(reports, path=cfg.plot_file, show=cfg.plot)

    return 1 if summary.missed else 0


if __name__ == "__main__":
    sys.exit(main())
