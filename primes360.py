#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
primes360.py — primality oracle and range prime generator for the 360-pattern sweep

What lives here:
- is_prime(n): exact for every n that fits a 64-bit machine word
    * n < 2^20        : lookup in a cached numpy sieve table
    * n <= 2^64 - 1   : deterministic Miller-Rabin, bases 2..37
    * larger n        : gmpy2.is_prime with a fixed number of rounds (PRIME_REPS)
- primes_in_range(start, end): primes p with start < p <= end
    * "sieve"      : both bounds fit a word -> exact segmented numpy sieve
    * "sampled"    : width fits a word but is huge -> first SAMPLE_CAP odd candidates only
    * "exhaustive" : every odd candidate (plus 2) tested with the oracle
- parallel_map(func, items, workers): order-preserving ProcessPoolExecutor fan-out

Sampling is an approximation: range_strategy() tells the caller when it happens.
"""

from __future__ import annotations

import logging
import math
import os
from concurrent.futures import ProcessPoolExecutor
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, TypeVar

import gmpy2
import numpy as np
import psutil

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# ---------- configuration ----------
WORD_MAX = 2**64 - 1               # "fits a machine word" means 0 <= n <= WORD_MAX
SMALL_SIEVE_LIMIT = 1 << 20        # lookup table size for the fastest path
PRIME_REPS = 25                    # gmpy2 Miller-Rabin rounds above WORD_MAX (error < 4^-25)
MR_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)  # deterministic below 3.3e24
SEGMENT_SIZE = 1 << 20             # numbers per numpy sieve segment
SAMPLE_THRESHOLD = 1_000_000       # widths above this are sampled when out of word range
SAMPLE_CAP = 1_000_000             # odd candidates tested on the sampled path
PARALLEL_MIN_ITEMS = 10_000        # below this a process pool costs more than it saves

STRATEGY_SIEVE = "sieve"
STRATEGY_SAMPLED = "sampled"
STRATEGY_EXHAUSTIVE = "exhaustive"


def fits_word(n: int) -> bool:
    return 0 <= n <= WORD_MAX


# ---------- workers ----------
def approx_physical_workers() -> int:
    return max(1, psutil.cpu_count(logical=False) or os.cpu_count() or 1)


def parallel_map(func: Callable[[T], R], items: Iterable[T], workers: Optional[int] = 1) -> List[R]:
    """Map func over items, in order. Uses processes only when it pays off.

    func must be picklable (a module-level function or a functools.partial of one).
    workers=None means one process per physical core.
    """
    items = list(items)
    if workers is None:
        workers = approx_physical_workers()
    if workers <= 1 or len(items) < PARALLEL_MIN_ITEMS:
        return [func(x) for x in items]
    chunksize = max(1, len(items) // (workers * 4))
    with ProcessPoolExecutor(max_workers=workers) as ex:
        return list(ex.map(func, items, chunksize=chunksize))


# ---------- sieve tables ----------
@lru_cache(maxsize=None)
def _small_prime_flags() -> np.ndarray:
    flags = np.ones(SMALL_SIEVE_LIMIT, dtype=bool)
    flags[0] = flags[1] = False
    for p in range(2, math.isqrt(SMALL_SIEVE_LIMIT - 1) + 1):
        if flags[p]:
            flags[p * p::p] = False
    flags.setflags(write=False)
    return flags


def _small_primes_upto(bound: int) -> np.ndarray:
    flags = _small_prime_flags()
    return np.nonzero(flags[: bound + 1])[0]


# ---------- primality ----------
def _miller_rabin_word(n: int) -> bool:
    for p in MR_BASES:
        if n == p:
            return True
        if n % p == 0:
            return False
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for a in MR_BASES:
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = (x * x) % n
            if x == n - 1:
                break
        else:
            return False
    return True


def is_prime(n: int) -> bool:
    """Exact inside the word range, PRIME_REPS-round probable prime above it."""
    n = int(n)
    if n <= 1:
        return False
    if n < SMALL_SIEVE_LIMIT:
        return bool(_small_prime_flags()[n])
    if n <= WORD_MAX:
        return _miller_rabin_word(n)
    return bool(gmpy2.is_prime(n, PRIME_REPS))


# ---------- range generation ----------
def range_strategy(start: int, end: int, *, sample_threshold: int = SAMPLE_THRESHOLD) -> str:
    """Which generation path primes_in_range takes for (start, end]."""
    if fits_word(max(start, 0)) and fits_word(max(end, 0)):
        return STRATEGY_SIEVE
    width = end - start
    if fits_word(width) and width > sample_threshold:
        return STRATEGY_SAMPLED
    return STRATEGY_EXHAUSTIVE


def _sieve_segment(lo: int, hi: int) -> List[int]:
    """Primes in [lo, hi], hi <= WORD_MAX, hi - lo < SEGMENT_SIZE."""
    lo = max(lo, 2)
    if lo > hi:
        return []
    limit = math.isqrt(hi)
    base_bound = min(limit, SMALL_SIEVE_LIMIT - 1)
    flags = np.ones(hi - lo + 1, dtype=bool)
    for p in _small_primes_upto(base_bound).tolist():
        first = max(p * p, -(-lo // p) * p)
        if first > hi:
            continue
        flags[first - lo::p] = False
    found = [lo + i for i in np.nonzero(flags)[0].tolist()]
    if limit > base_bound:
        # survivors with no factor <= base_bound may still be composite
        safe = base_bound * base_bound
        found = [p for p in found if p <= safe or _miller_rabin_word(p)]
    return found


def _sieve_range(start: int, end: int) -> List[int]:
    primes: List[int] = []
    lo = max(start + 1, 2)
    while lo <= end:
        hi = min(end, lo + SEGMENT_SIZE - 1)
        primes.extend(_sieve_segment(lo, hi))
        lo = hi + 1
    return primes


def _first_odd_above(start: int) -> int:
    return start + 1 if start % 2 == 0 else start + 2


def primes_in_range(
    start: int,
    end: int,
    *,
    workers: Optional[int] = 1,
    sample_threshold: int = SAMPLE_THRESHOLD,
    sample_cap: int = SAMPLE_CAP,
) -> List[int]:
    """Ascending primes p with start < p <= end (see module docstring for paths)."""
    start, end = int(start), int(end)
    if end < 2 or start >= end:
        return []
    start = max(start, 1)

    strategy = range_strategy(start, end, sample_threshold=sample_threshold)
    if strategy == STRATEGY_SIEVE:
        return _sieve_range(start, end)

    first = _first_odd_above(start)
    if strategy == STRATEGY_SAMPLED:
        last = min(end, first + 2 * (sample_cap - 1))
        log.warning(
            "range (%d, %d] is very large; sampling %d odd candidates up to %d",
            start, end, sample_cap, last,
        )
        candidates = list(range(first, last + 1, 2))
        flags = parallel_map(is_prime, candidates, workers)
        return [c for c, ok in zip(candidates, flags) if ok]

    candidates = list(range(first, end + 1, 2))
    flags = parallel_map(is_prime, candidates, workers)
    primes = [c for c, ok in zip(candidates, flags) if ok]
    if start < 2 <= end:
        primes.insert(0, 2)
    return sorted(primes)
