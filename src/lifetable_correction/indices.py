"""
lifetable_correction/indices.py - Demographic Indices of a Life Table

Ratios of deaths in selected age ranges, following Bocquet-Appel & Masset
(1977). Age ranges are matched on the age at which each class starts, so
the boundaries 5, 10, 15, 20, 30, 50 and 60 should coincide with class
boundaries for the ratios to be exact.

Indices:
- juvenile_i:      D(5-9) / D(20+)
- senility_i:      D(60+) / D(20+)
- p5_14:           D(5-14) / D(5+)
- D30_D5:          D(30+) / D(5+)
- D0_14_D:         D(0-14) / D(all)
- D15_49_D15plus:  D(15-49) / D(15+)

Author: Palaeodemography Pipeline Project
License: MIT
"""

import numpy as np
from typing import Dict, Optional, Union
from dataclasses import dataclass, asdict
import logging

from .life_table import LifeTable, LifeTableList
from .exceptions import LifeTableTypeError

logger = logging.getLogger(__name__)


INDEX_BOUNDARY_AGES = (5, 10, 15, 20, 30, 50, 60)


@dataclass(frozen=True)
class LifeTableIndices:
    """Death ratios derived from one life table."""
    juvenile_i: float
    senility_i: float
    p5_14: float
    D30_D5: float
    D0_14_D: float
    D15_49_D15plus: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _deaths_between(starts: np.ndarray, Dx: np.ndarray,
                    lower: float, upper: Optional[float] = None) -> float:
    """Sum deaths of classes starting in [lower, upper)."""
    mask = starts >= lower
    if upper is not None:
        mask &= starts < upper
    return float(Dx[mask].sum())


def _ratio(name: str, numerator: float, denominator: float) -> float:
    if denominator == 0:
        logger.warning(f"{name} undefined: no deaths in the reference age range")
        return float('nan')
    return numerator / denominator


def _check_boundaries(starts: np.ndarray, a: np.ndarray) -> None:
    ends = starts + a
    boundaries = set(starts.tolist()) | set(ends.tolist())
    last_age = ends[-1]
    straddled = [age for age in INDEX_BOUNDARY_AGES
                 if age < last_age and float(age) not in boundaries]
    if straddled:
        logger.warning(f"Index ages {straddled} fall inside age classes; ratios are approximate")


def _single_table_indices(table: LifeTable) -> LifeTableIndices:
    a = table.a
    Dx = table.Dx
    starts = table.start_ages
    _check_boundaries(starts, a)

    d_total = float(Dx.sum())
    d5_9 = _deaths_between(starts, Dx, 5, 10)
    d5_14 = _deaths_between(starts, Dx, 5, 15)
    d0_14 = _deaths_between(starts, Dx, 0, 15)
    d15_49 = _deaths_between(starts, Dx, 15, 50)
    d5_plus = _deaths_between(starts, Dx, 5)
    d15_plus = _deaths_between(starts, Dx, 15)
    d20_plus = _deaths_between(starts, Dx, 20)
    d30_plus = _deaths_between(starts, Dx, 30)
    d60_plus = _deaths_between(starts, Dx, 60)

    return LifeTableIndices(
        juvenile_i=_ratio('juvenile_i', d5_9, d20_plus),
        senility_i=_ratio('senility_i', d60_plus, d20_plus),
        p5_14=_ratio('p5_14', d5_14, d5_plus),
        D30_D5=_ratio('D30_D5', d30_plus, d5_plus),
        D0_14_D=_ratio('D0_14_D', d0_14, d_total),
        D15_49_D15plus=_ratio('D15_49_D15plus', d15_49, d15_plus),
    )


def lt_indices(life_table: Union[LifeTable, LifeTableList]
               ) -> Union[LifeTableIndices, Dict[str, LifeTableIndices]]:
    """
    Compute death-ratio indices for a life table or each table of a list.

    Args:
        life_table: LifeTable or LifeTableList

    Returns:
        LifeTableIndices, or a dict of name -> LifeTableIndices in list order
    """
    if isinstance(life_table, LifeTable):
        return _single_table_indices(life_table)
    if isinstance(life_table, LifeTableList):
        return {name: _single_table_indices(table) for name, table in life_table.items()}
    raise LifeTableTypeError(
        f"x is not a LifeTable or LifeTableList: {type(life_table).__name__}"
    )
