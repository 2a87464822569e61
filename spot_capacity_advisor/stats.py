import math
from hashlib import blake2b
from typing import Sequence

import numpy as np
from scipy.stats import weibull_min

# 2 ** 64, the number of distinct values of an 8 byte digest
_DIGEST_SPACE = float(1 << 64)


def stable_unit(*parts: str) -> float:
    """Deterministically maps the given parts to a float in [0, 1)

    Unlike hash() this does not change between interpreter runs
    (PYTHONHASHSEED) and unlike a seeded RNG it has no state, so the same
    parts always produce the same value in any process on any machine.
    """
    # NUL cannot appear in zone or shape names so it keeps
    # ("ab", "c") and ("a", "bc") apart
    payload = "\0".join(parts).encode("utf-8")
    digest = blake2b(payload, digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=False) / _DIGEST_SPACE


def jitter(unit: float, width: float) -> float:
    """Scale factor centered on 1 spanning [1 - width / 2, 1 + width / 2)"""
    return 1.0 + width * (unit - 0.5)


def decay(ratio: float, shape: float, scale: float) -> float:
    """Probability left after applying a scarcity ratio

    This is the Weibull survival function: 1 at ratio 0, monotonically
    non-increasing and approaching 0 once the ratio passes ~2 * scale.
    """
    if ratio <= 0:
        return 1.0
    return float(np.clip(weibull_min.sf(ratio, shape, scale=scale), 0.0, 1.0))


def survival(hazard_per_hour: float, hours: float) -> float:
    """Probability an instance is not preempted over the window"""
    return math.exp(-max(hazard_per_hour, 0.0) * max(hours, 0.0))


def weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float:
    if not values or sum(weights) <= 0:
        return 1.0
    mean = np.average(np.asarray(values), weights=np.asarray(weights))
    return float(np.clip(mean, 0.0, 1.0))
