"""
Life Table Correction for Skeletal Populations

Corrects archaeological life tables for the under-representation of infants
and young children, after Bocquet-Appel & Masset (1977):
- Estimates e0, 1q0, 5q0, mortality rate m and growth rate r from the
  juvenility and senility indices
- Redistributes the deaths of the first 5 years of life and rebuilds the
  life table from the revised counts

Version: 1.0.0

Author: Palaeodemography Pipeline Project
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Palaeodemography Pipeline Project"

from .config import LifeTableConfig

from .life_table import (
    LifeTable,
    LifeTableList,
    build_life_table,
    life_table,
    spline_adult_deaths,
)

from .indices import (
    LifeTableIndices,
    lt_indices,
)

from .estimator import (
    CorrectionIndex,
    INDEX_NAMES,
    INDEX_OFFSETS,
    estimate_indices,
)

from .correction import (
    CorrectionLayout,
    CorrectionResult,
    InputKind,
    correct_life_table,
    detect_layout,
    lt_correction,
    redistribute_deaths,
)

from .exceptions import (
    LifeTableCorrectionError,
    LifeTableTypeError,
    RatioDomainError,
    UnsupportedLayoutError,
)

__all__ = [
    # Configuration
    "LifeTableConfig",

    # Life tables
    "LifeTable",
    "LifeTableList",
    "build_life_table",
    "life_table",
    "spline_adult_deaths",

    # Indices
    "LifeTableIndices",
    "lt_indices",

    # Estimator
    "CorrectionIndex",
    "INDEX_NAMES",
    "INDEX_OFFSETS",
    "estimate_indices",

    # Correction
    "CorrectionLayout",
    "CorrectionResult",
    "InputKind",
    "correct_life_table",
    "detect_layout",
    "lt_correction",
    "redistribute_deaths",

    # Errors
    "LifeTableCorrectionError",
    "LifeTableTypeError",
    "RatioDomainError",
    "UnsupportedLayoutError",
]
