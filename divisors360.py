#!/usr/bin/env python3
# divisors360.py — positive divisors of an integer, word-sized or not
from __future__ import annotations

import logging
from typing import List, Tuple

import gmpy2
from sympy import factorint

from primes360 import fits_word

log = logging.getLogger(__name__)


def prime_factorization(n: int) -> List[Tuple[int, int]]:
    """(prime, exponent) pairs of n, ascending by prime."""
    return sorted((int(p), int(e)) for p, e in factorint(n).items())


def _divisors_from_factorization(n: int) -> List[int]:
    found = [1]
    for p, e in prime_factorization(n):
        new = []
        for d in found:
            cur = d
            for _ in range(e):
                cur *= p
                new.append(cur)
        found.extend(new)
    return sorted(set(found))


def _divisors_by_trial_division(n: int) -> List[int]:
    # O(sqrt(n)): callers keep n small enough for this to finish
    found = {1, n}
    limit = int(gmpy2.isqrt(n)) + 1
    i = 2
    while i <= limit:
        q, r = divmod(n, i)
        if r == 0:
            found.add(i)
            found.add(q)
        i += 1
    return sorted(found)


def divisors(n: int) -> List[int]:
    """All positive divisors of n, ascending, always including 1 and n."""
    n = int(n)
    if n < 1:
        raise ValueError(f"divisors() needs a positive integer (got {n})")
    if fits_word(n):
        return _divisors_from_factorization(n)
    log.debug("divisors(%d): beyond word range, trial division up to sqrt", n)
    return _divisors_by_trial_division(n)
