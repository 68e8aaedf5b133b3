#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
coverage360.py — per-scale coverage check for the 360-prime pattern

For a scale m the range is ((m-1)*360, m*360] (starting at 1 when m = 1).
Every prime in it is classified exactly once:
  DIVISOR   : within k of a divisor of m*360
  SEQUENCE  : otherwise, within k of a term of base, base+2, base+5, base+9, ...
              with base = (m-1)*360 + 181
  UNCOVERED : neither; a counterexample to the pattern at tolerance k

Divisors are checked first, so a prime near both counts as DIVISOR.
Classifications are mapped independently and reduced with a Counter, so the
report does not depend on the order in which workers finish.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from collections import Counter
from dataclasses import asdict, dataclass, field
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from divisors360 import divisors
from primes360 import STRATEGY_SAMPLED, parallel_map, primes_in_range, range_strategy

log = logging.getLogger(__name__)

SCALE_WIDTH = 360
SEQUENCE_OFFSET = 181
DEFAULT_MAX_K = 180
DEFAULT_MAX_PRIMES = 100_000
MISSED_PREVIEW = 10


class Coverage(enum.Enum):
    DIVISOR = "divisor"
    SEQUENCE = "sequence"
    UNCOVERED = "uncovered"


# ---------- candidate generation ----------
def sequence_terms(base: int, ceiling: int) -> List[int]:
    """base, base+2, base+2+3, ... while the term stays <= ceiling."""
    terms: List[int] = []
    term, i = base, 1
    while term <= ceiling:
        terms.append(term)
        i += 1
        term += i
    return terms


def within_tolerance(target: int, candidates: Iterable[int], k: int) -> bool:
    for c in candidates:
        if abs(target - c) <= k:
            return True
    return False


def scale_bounds(m: int) -> Tuple[int, int]:
    """(range_start, range_end) for scale m."""
    start = (m - 1) * SCALE_WIDTH if m > 1 else 1
    return start, m * SCALE_WIDTH


def sequence_base(m: int) -> int:
    return (m - 1) * SCALE_WIDTH + SEQUENCE_OFFSET if m > 1 else SEQUENCE_OFFSET


def relevant_divisors(m: int, k: int) -> List[int]:
    """Divisors of m*360 that can lie within k of a prime in the scale's range."""
    range_start, range_end = scale_bounds(m)
    lo = max(range_start - k, 0)
    hi = range_end + k
    return [d for d in divisors(m * SCALE_WIDTH) if lo <= d <= hi]


def classify_prime(
    prime: int,
    divisor_candidates: Sequence[int],
    sequence_candidates: Sequence[int],
    k: int,
) -> Coverage:
    if within_tolerance(prime, divisor_candidates, k):
        return Coverage.DIVISOR
    if within_tolerance(prime, sequence_candidates, k):
        return Coverage.SEQUENCE
    return Coverage.UNCOVERED


# ---------- report ----------
@dataclass(frozen=True)
class ScaleReport:
    m: int
    k: int
    range_start: int
    range_end: int
    strategy: str                 # "sieve" | "exhaustive" | "sampled"
    sampled: bool                 # True -> primes_found is a lower bound, not exact
    primes_found: int
    primes_checked: int
    truncated: bool               # True -> only the first primes_checked primes were classified
    divisor_base: int
    divisor_candidates: int
    sequence_base: int
    sequence_terms: int
    divisor_covered: int
    sequence_covered: int
    uncovered: int
    uncovered_primes: Tuple[int, ...] = ()
    elapsed_ms: float = field(default=0.0, compare=False)

    @property
    def covered(self) -> int:
        return self.divisor_covered + self.sequence_covered

    @property
    def all_covered(self) -> bool:
        return self.uncovered == 0

    def missed_preview(self, limit: int = MISSED_PREVIEW) -> List[int]:
        return list(self.uncovered_primes[:limit])

    def to_dict(self) -> Dict[str, object]:
        d = asdict(self)
        d["uncovered_primes"] = list(self.uncovered_primes)
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def pretty(self) -> str:
        lines = []
        lines.append(
            f"--- Checking Primes in Range ({self.range_start}, {self.range_end}] (Scale m={self.m}) ---"
        )
        if self.sampled:
            lines.append(f"  Range generation: sampled (approximate, {self.primes_found} primes discovered)")
        if self.truncated:
            lines.append(
                f"  Found {self.primes_found} primes, limiting check to {self.primes_checked} samples for efficiency"
            )
        if self.primes_checked == 0:
            lines.append("  No primes in this range.")
        else:
            lines.append(f"  Will check {self.primes_checked} primes in this range.")
        lines.append(f"  Found {self.divisor_candidates} relevant factors of {self.divisor_base}.")
        lines.append(f"  Generated {self.sequence_terms} sequence terms from {self.sequence_base}.")
        lines.append(
            f"  Primes in range found near Factors of {self.divisor_base} (+/- {self.k}): {self.divisor_covered}"
        )
        lines.append(
            f"  Primes in range found near Seq({self.sequence_base}, +i) (+/- {self.k}): {self.sequence_covered}"
        )
        lines.append(f"  Total unique primes in range found: {self.covered}")
        if self.all_covered:
            lines.append(
                f"  All {self.primes_checked} primes checked in range ({self.range_start}, {self.range_end}] "
                f"are found by the combined scaled methods with k={self.k}."
            )
        else:
            lines.append(
                f"  Missed {self.uncovered} primes in range ({self.range_start}, {self.range_end}] with k={self.k}!"
            )
            preview = self.missed_preview()
            if self.uncovered <= len(preview):
                lines.append(f"  Missed primes: {preview}")
            else:
                lines.append(f"  First {len(preview)} missed primes: {preview}")
        lines.append(f"  Range check completed in: {self.elapsed_ms:.1f} ms")
        return "\n".join(lines)


# ---------- evaluation ----------
def evaluate_scale(
    m: int,
    k: int,
    max_primes_to_check: int = DEFAULT_MAX_PRIMES,
    *,
    workers: Optional[int] = 1,
) -> ScaleReport:
    """Classify every prime of scale m against divisor and sequence candidates."""
    if m < 1:
        raise ValueError(f"scale m must be >= 1 (got {m})")
    if k < 0:
        raise ValueError(f"tolerance k must be >= 0 (got {k})")
    if max_primes_to_check < 1:
        raise ValueError(f"max_primes_to_check must be >= 1 (got {max_primes_to_check})")

    t0 = time.perf_counter()
    range_start, range_end = scale_bounds(m)

    strategy = range_strategy(range_start, range_end)
    found = primes_in_range(range_start, range_end, workers=workers)
    truncated = len(found) > max_primes_to_check
    primes = found[:max_primes_to_check] if truncated else found
    if truncated:
        log.warning("m=%d: %d primes found, checking the first %d", m, len(found), max_primes_to_check)

    divs = relevant_divisors(m, k)
    base = sequence_base(m)
    seq = sequence_terms(base, range_end + k)
    log.debug("m=%d: %d primes, %d divisor candidates, %d sequence terms", m, len(primes), len(divs), len(seq))

    classify = partial(classify_prime, divisor_candidates=tuple(divs), sequence_candidates=tuple(seq), k=k)
    classes = parallel_map(classify, primes, workers)
    tally = Counter(classes)
    missed = tuple(p for p, c in zip(primes, classes) if c == Coverage.UNCOVERED)

    return ScaleReport(
        m=m,
        k=k,
        range_start=range_start,
        range_end=range_end,
        strategy=strategy,
        sampled=strategy == STRATEGY_SAMPLED,
        primes_found=len(found),
        primes_checked=len(primes),
        truncated=truncated,
        divisor_base=m * SCALE_WIDTH,
        divisor_candidates=len(divs),
        sequence_base=base,
        sequence_terms=len(seq),
        divisor_covered=tally[Coverage.DIVISOR],
        sequence_covered=tally[Coverage.SEQUENCE],
        uncovered=tally[Coverage.UNCOVERED],
        uncovered_primes=missed,
        elapsed_ms=(time.perf_counter() - t0) * 1000.0,
    )
