"""
lifetable_correction/estimator.py - Bocquet-Appel & Masset Index Estimator

Regression estimates calibrated on modern reference populations
(Bocquet-Appel & Masset 1977; Herrmann et al. 1990, 307). Inputs are the
juvenility index j = D(5-9)/D(20+) and the senility index s = D(60+)/D(20+).

Formulas (log = log10):
- e0  = 78.721 · log(√(1/j)) - 3.384            ± 1.503
- 1q0 = 0.568 · √log(200·j) - 0.438             ± 0.016
- 5q0 = 1.154 · √log(200·j) - 1.014             ± 0.041
- m   = 0.127 · j + 0.016                       ± 0.002
- r   = 1.484 · (log(200·j·s))^0.03 - 1.485     ± 0.006

m is the mortality rate, which equals the natality rate n under the
stationary-population assumption. The ranges are the published fixed
offsets, not confidence intervals.

Author: Palaeodemography Pipeline Project
License: MIT
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass
import logging

from .exceptions import RatioDomainError

logger = logging.getLogger(__name__)


INDEX_NAMES = ('e0', '1q0', '5q0', 'm', 'r')

# Symmetric range offsets per index
INDEX_OFFSETS = {
    'e0': 1.503,
    '1q0': 0.016,
    '5q0': 0.041,
    'm': 0.002,
    'r': 0.006,
}

DECIMALS = 3


@dataclass(frozen=True)
class CorrectionIndex:
    """
    One estimated index with its range.

    value, range_start and range_end are each rounded separately from the
    full-precision estimate, so range_end - range_start may differ from
    2 * offset in the last digit.
    """
    name: str
    value: float
    range_start: float
    range_end: float
    offset: float

    def as_row(self) -> Tuple[float, float, float]:
        return (self.value, self.range_start, self.range_end)


def round_index(value: float) -> float:
    return round(float(value), DECIMALS)


def make_index(name: str, estimate: float) -> CorrectionIndex:
    """Attach the published offset to a full-precision estimate and round."""
    offset = INDEX_OFFSETS[name]
    return CorrectionIndex(
        name=name,
        value=round_index(estimate),
        range_start=round_index(estimate - offset),
        range_end=round_index(estimate + offset),
        offset=offset,
    )


def check_ratio_domain(juvenile_i: float, senility_i: float) -> None:
    """
    Raise RatioDomainError unless every regression has a real result.

    1q0/5q0 take √log10(200·j), so 200·j must be at least 1; r raises
    log10(200·j·s) to a fractional power, so 200·j·s must be at least 1.
    """
    problems = []
    if not np.isfinite(juvenile_i):
        problems.append(f"juvenile_i={juvenile_i} is not finite")
    elif juvenile_i <= 0:
        problems.append(f"juvenile_i={juvenile_i} must be positive")
    elif 200 * juvenile_i < 1:
        problems.append(f"juvenile_i={juvenile_i} must be at least 0.005")

    if not np.isfinite(senility_i):
        problems.append(f"senility_i={senility_i} is not finite")
    elif not problems and 200 * juvenile_i * senility_i < 1:
        problems.append(
            f"200 * juvenile_i * senility_i = {200 * juvenile_i * senility_i:.4g} must be at least 1"
        )

    if problems:
        raise RatioDomainError(
            "Juvenile/senility ratio out of valid range: " + "; ".join(problems)
        )


def estimate_e0(juvenile_i: float) -> float:
    return float(78.721 * np.log10(np.sqrt(1 / juvenile_i)) - 3.384)


def estimate_q1_0(juvenile_i: float) -> float:
    return float(0.568 * np.sqrt(np.log10(200 * juvenile_i)) - 0.438)


def estimate_q5_0(juvenile_i: float) -> float:
    return float(1.154 * np.sqrt(np.log10(200 * juvenile_i)) - 1.014)


def estimate_mortality_rate(juvenile_i: float) -> float:
    return 0.127 * juvenile_i + 0.016


def estimate_growth_rate(juvenile_i: float, senility_i: float) -> float:
    return float(1.484 * np.log10(200 * juvenile_i * senility_i) ** 0.03 - 1.485)


def estimate_indices(juvenile_i: float, senility_i: float) -> Tuple[CorrectionIndex, ...]:
    """
    Estimate e0, 1q0, 5q0, m and r from the juvenility and senility indices.

    Args:
        juvenile_i: D(5-9) / D(20+)
        senility_i: D(60+) / D(20+)

    Returns:
        Five CorrectionIndex values in the order of INDEX_NAMES

    Raises:
        RatioDomainError: if a ratio puts any formula outside its domain
    """
    juvenile_i = float(juvenile_i)
    senility_i = float(senility_i)
    check_ratio_domain(juvenile_i, senility_i)

    estimates = {
        'e0': estimate_e0(juvenile_i),
        '1q0': estimate_q1_0(juvenile_i),
        '5q0': estimate_q5_0(juvenile_i),
        'm': estimate_mortality_rate(juvenile_i),
        'r': estimate_growth_rate(juvenile_i, senility_i),
    }
    logger.debug(f"Raw estimates for j={juvenile_i:.4f}, s={senility_i:.4f}: {estimates}")

    return tuple(make_index(name, estimates[name]) for name in INDEX_NAMES)
