"""
lifetable_correction/correction.py - Corrected Life Table

Skeletal assemblages are known to under-represent infants and young
children, which understates early mortality and overstates life expectancy.
This module replaces the deaths of the youngest age class(es) with the
numbers implied by the Bocquet-Appel & Masset estimates of 1q0 and 5q0 and
rebuilds the life table from the revised counts.

Redistribution:
- ΣDx_corr = (ΣDx - Dx[0]) / (1 - 5q0)
- D(0-5)_corr = 5q0 · ΣDx_corr
- 5-year first class:        Dx[0] = D(0-5)_corr
- 1-year + 4-year classes:   Dx[0] = 1q0 · ΣDx_corr,  Dx[1] = D(0-5)_corr - Dx[0]

The correction rests on regressions from modern populations and its use
for archaeological data is debated; the representativity of the data
should be checked before relying on it.

Author: Palaeodemography Pipeline Project
License: MIT
"""

import numpy as np
import pandas as pd
from typing import Dict, Optional, Sequence, Tuple, Union
from dataclasses import dataclass
from enum import Enum
import logging

from .config import LifeTableConfig
from .life_table import LifeTable, LifeTableList, build_life_table
from .indices import lt_indices
from .estimator import (
    CorrectionIndex,
    INDEX_NAMES,
    estimate_indices,
    estimate_q1_0,
    estimate_q5_0,
)
from .exceptions import (
    LifeTableTypeError,
    RatioDomainError,
    UnsupportedLayoutError,
)

logger = logging.getLogger(__name__)


INDEX_TABLE_COLUMNS = ['value', 'range_start', 'range_end']

LAYOUT_REQUIREMENT = (
    "Life table correction works only with one 5-year age class or a 1-year "
    "class followed by a 4-year class for the first 5 years of life."
)


class CorrectionLayout(Enum):
    """Supported shapes of the first five years of a life table."""
    SINGLE_FIVE_YEAR = "single_five_year"
    ONE_AND_FOUR_YEAR = "one_and_four_year"


# Number of leading classes whose deaths are replaced
CORRECTED_CLASSES = {
    CorrectionLayout.SINGLE_FIVE_YEAR: 1,
    CorrectionLayout.ONE_AND_FOUR_YEAR: 2,
}


class InputKind(Enum):
    """Input variants accepted by lt_correction."""
    SINGLE_TABLE = "single_table"
    TABLE_COLLECTION = "table_collection"
    INVALID = "invalid"


@dataclass(frozen=True, eq=False)
class CorrectionResult:
    """Estimated indices together with the corrected life table."""
    indices: Tuple[CorrectionIndex, ...]
    life_table_corr: LifeTable

    @property
    def indices_table(self) -> pd.DataFrame:
        """Indices as a DataFrame indexed e0, 1q0, 5q0, m, r."""
        return pd.DataFrame(
            [index.as_row() for index in self.indices],
            index=[index.name for index in self.indices],
            columns=INDEX_TABLE_COLUMNS,
        )

    def index(self, name: str) -> CorrectionIndex:
        for item in self.indices:
            if item.name == name:
                return item
        raise KeyError(f"Unknown index: {name}. Available: {list(INDEX_NAMES)}")


# =============================================================================
# DEATH-COUNT REDISTRIBUTION
# =============================================================================

def detect_layout(a: Sequence[float]) -> CorrectionLayout:
    """
    Identify how the first five years are split into age classes.

    Raises:
        UnsupportedLayoutError: for anything but [5, ...] or [1, 4, ...]
    """
    widths = list(a)
    if len(widths) >= 1 and widths[0] == 5:
        return CorrectionLayout.SINGLE_FIVE_YEAR
    if len(widths) >= 2 and widths[0] == 1 and widths[1] == 4:
        return CorrectionLayout.ONE_AND_FOUR_YEAR
    raise UnsupportedLayoutError(
        f"{LAYOUT_REQUIREMENT} First class widths: {widths[:2]}"
    )


def redistribute_deaths(a: Sequence[float], Dx: Sequence[float],
                        q1_0: float, q5_0: float,
                        layout: Optional[CorrectionLayout] = None) -> np.ndarray:
    """
    Compute revised death counts for the youngest class(es).

    Args:
        a: Class widths
        Dx: Deaths per class
        q1_0: Estimated probability of death before age 1
        q5_0: Estimated probability of death before age 5
        layout: Layout already detected for ``a`` (detected here if None)

    Returns:
        New death-count array; only the first one or two entries differ
    """
    if layout is None:
        layout = detect_layout(a)
    if q5_0 >= 1:
        raise RatioDomainError(f"5q0={q5_0:.4f} leaves no deaths after age 5")

    corrected = np.array(Dx, dtype=np.float64)

    dx_sum_corrected = (corrected.sum() - corrected[0]) / (1 - q5_0)
    dx5_0_corrected = q5_0 * dx_sum_corrected
    logger.debug(f"Corrected total deaths: {dx_sum_corrected:.3f}, deaths 0-5: {dx5_0_corrected:.3f}")

    if layout is CorrectionLayout.SINGLE_FIVE_YEAR:
        corrected[0] = dx5_0_corrected
    elif layout is CorrectionLayout.ONE_AND_FOUR_YEAR:
        dx1_0_corrected = q1_0 * dx_sum_corrected
        corrected[0] = dx1_0_corrected
        corrected[1] = dx5_0_corrected - dx1_0_corrected

    if np.any(corrected < 0):
        logger.warning(
            f"Negative corrected death counts {corrected[:2].round(3).tolist()} "
            f"(1q0={q1_0:.3f}, 5q0={q5_0:.3f}); juvenility index is very low"
        )

    return corrected


# =============================================================================
# ENTRY POINTS
# =============================================================================

def correct_life_table(life_table: LifeTable,
                       config: Optional[LifeTableConfig] = None) -> CorrectionResult:
    """
    Correct a single life table.

    Args:
        life_table: Table to correct (left unchanged)
        config: Options for rebuilding the corrected table

    Returns:
        CorrectionResult with the five indices and the corrected table
    """
    if not isinstance(life_table, LifeTable):
        raise LifeTableTypeError(
            f"x is not a LifeTable: {type(life_table).__name__}"
        )
    config = config if config is not None else LifeTableConfig()

    a = life_table.a
    layout = detect_layout(a)

    indx = lt_indices(life_table)
    indices = estimate_indices(indx.juvenile_i, indx.senility_i)

    # Redistribution uses unrounded quotients
    q1_0 = estimate_q1_0(indx.juvenile_i)
    q5_0 = estimate_q5_0(indx.juvenile_i)

    Dx = redistribute_deaths(a, life_table.Dx, q1_0, q5_0, layout)

    life_table_corr = build_life_table(
        pd.DataFrame({'a': a, 'Dx': Dx}), config,
        negative_young_classes=CORRECTED_CLASSES[layout],
    )

    result = CorrectionResult(indices=indices, life_table_corr=life_table_corr)
    logger.info(
        f"Life table corrected ({layout.value}): "
        f"e0={result.index('e0').value:.3f}, 5q0={result.index('5q0').value:.3f}"
    )
    return result


def _classify_input(life_table) -> InputKind:
    if isinstance(life_table, LifeTable):
        return InputKind.SINGLE_TABLE
    if isinstance(life_table, LifeTableList):
        return InputKind.TABLE_COLLECTION
    return InputKind.INVALID


def lt_correction(life_table: Union[LifeTable, LifeTableList],
                  agecor: bool = True,
                  agecorfac: Sequence[float] = (),
                  option_spline: Optional[int] = None
                  ) -> Union[CorrectionResult, Dict[str, CorrectionResult]]:
    """
    Correct a life table, or each table of a LifeTableList.

    Args:
        life_table: LifeTable or LifeTableList
        agecor: Correct Ax for the youngest classes of the corrected table
        agecorfac: Explicit Ax factors from the first class onward
        option_spline: Width of cumulated adult classes to spline (None = off)

    Returns:
        CorrectionResult, or a dict of name -> CorrectionResult in list order

    Raises:
        LifeTableTypeError: input is not a LifeTable or LifeTableList
        RatioDomainError: juvenility/senility indices outside formula domain
        UnsupportedLayoutError: first classes are not [5] or [1, 4]
    """
    kind = _classify_input(life_table)
    if kind is InputKind.INVALID:
        raise LifeTableTypeError(
            f"x is not a LifeTable or LifeTableList: {type(life_table).__name__}"
        )

    config = LifeTableConfig(agecor=agecor, agecorfac=agecorfac,
                             option_spline=option_spline)

    if kind is InputKind.SINGLE_TABLE:
        return correct_life_table(life_table, config)

    logger.info(f"Correcting {len(life_table)} life tables")
    return {name: correct_life_table(table, config)
            for name, table in life_table.items()}
