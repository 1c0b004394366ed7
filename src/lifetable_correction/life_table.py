"""
lifetable_correction/life_table.py - Life Table Constructor

Builds an abridged life table from an age-at-death distribution, the form in
which skeletal (archaeological) mortality data are usually recorded.

Mathematical Framework:
- dx = Dx / ΣDx × 100                       (percentage of deaths)
- lx = 100 - Σ_{k<x} dx                     (survivors entering class x)
- qx = dx / lx × 100                        (probability of death in class x)
- Lx = a·lx - (a - Ax)·dx                   (years lived in class x)
- Tx = Σ_{k≥x} Lx,  ex = Tx / lx            (life expectancy at start of x)
- rel_popx = Lx / ΣLx × 100                 (share of the living population)

Input columns:
- a:  width of each age class in years
- Dx: number of deaths observed in each class

Author: Palaeodemography Pipeline Project
License: MIT
"""

import numpy as np
import pandas as pd
from typing import Dict, Mapping, Optional, Sequence, Union
from dataclasses import dataclass, field
import logging

from scipy.interpolate import PchipInterpolator

from .config import (
    LifeTableConfig,
    YOUNG_AGE_LIMIT,
    YOUNG_AX_FACTOR,
    DEFAULT_AX_FACTOR,
)
from .exceptions import LifeTableTypeError

logger = logging.getLogger(__name__)


LIFE_TABLE_COLUMNS = [
    'x', 'a', 'Ax', 'Dx', 'dx', 'lx', 'qx', 'Lx', 'Tx', 'ex', 'rel_popx'
]

# Adult classes (start age >= ADULT_AGE) are the ones smoothed by the spline
ADULT_AGE = 20
SPLINE_OUTPUT_WIDTH = 5


@dataclass(frozen=True, eq=False)
class LifeTable:
    """
    Life table with its construction settings.

    Wraps the computed DataFrame (columns as in LIFE_TABLE_COLUMNS) together
    with the configuration it was built with. The dataclass fields are
    frozen, but ``data`` is the live DataFrame; the accessor properties and
    methods below return copies and are the intended read path.
    """
    data: pd.DataFrame
    config: LifeTableConfig = field(default_factory=LifeTableConfig)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def a(self) -> np.ndarray:
        return self.data['a'].to_numpy(dtype=np.float64, copy=True)

    @property
    def Dx(self) -> np.ndarray:
        return self.data['Dx'].to_numpy(dtype=np.float64, copy=True)

    @property
    def start_ages(self) -> np.ndarray:
        """Age at which each class begins."""
        return _start_ages(self.a)

    def column(self, name: str) -> np.ndarray:
        return self.data[name].to_numpy(copy=True)

    def to_frame(self) -> pd.DataFrame:
        return self.data.copy()

    def age_deaths(self) -> pd.DataFrame:
        """The a/Dx input columns this table can be rebuilt from."""
        return self.data[['a', 'Dx']].copy()


class LifeTableList(dict):
    """
    Named, ordered collection of life tables (e.g. one per sex or site).

    Values must be LifeTable instances.
    """

    def __init__(self, *args, **kwargs):
        super().__init__()
        self.update(*args, **kwargs)

    def __setitem__(self, key, value):
        if not isinstance(value, LifeTable):
            raise LifeTableTypeError(
                f"LifeTableList values must be LifeTable, got {type(value).__name__}"
            )
        super().__setitem__(key, value)

    def update(self, *args, **kwargs):
        for key, value in dict(*args, **kwargs).items():
            self[key] = value


# =============================================================================
# INPUT PREPARATION
# =============================================================================

def _start_ages(a: np.ndarray) -> np.ndarray:
    return np.concatenate(([0.0], np.cumsum(a)[:-1]))


def _class_labels(a: np.ndarray) -> list:
    starts = _start_ages(a)
    ends = starts + a
    return [f"{start:g}--{end - 1:g}" if width >= 1 else f"{start:g}--{end:g}"
            for start, end, width in zip(starts, ends, a)]


def _validate_age_deaths(age_deaths: Union[pd.DataFrame, Mapping],
                         negative_young_classes: int = 0) -> pd.DataFrame:
    """
    Check the a/Dx input and return it as a fresh float DataFrame.

    The first ``negative_young_classes`` death counts may be negative.
    """
    if isinstance(age_deaths, pd.DataFrame):
        frame = age_deaths
    elif isinstance(age_deaths, Mapping):
        frame = pd.DataFrame(dict(age_deaths))
    else:
        raise LifeTableTypeError(
            f"Expected a DataFrame with columns 'a' and 'Dx', got {type(age_deaths).__name__}"
        )

    missing = [col for col in ('a', 'Dx') if col not in frame.columns]
    if missing:
        raise ValueError(f"Age/death table missing required columns: {missing}")
    if len(frame) == 0:
        raise ValueError("Age/death table is empty")

    a = pd.to_numeric(frame['a']).to_numpy(dtype=np.float64)
    dx = pd.to_numeric(frame['Dx']).to_numpy(dtype=np.float64)

    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(dx))):
        raise ValueError("Age class widths and death counts must be finite")
    if np.any(a <= 0):
        raise ValueError(f"Age class widths must be positive: {a.tolist()}")
    if np.any(dx[negative_young_classes:] < 0):
        raise ValueError(f"Death counts must be non-negative: {dx.tolist()}")
    if dx.sum() <= 0:
        raise ValueError("Total number of deaths must be positive")

    return pd.DataFrame({'a': a, 'Dx': dx})


# =============================================================================
# SPLINE SMOOTHING OF ADULT CLASSES
# =============================================================================

def spline_adult_deaths(a: np.ndarray, Dx: np.ndarray,
                        cumulated_width: int) -> "tuple[np.ndarray, np.ndarray]":
    """
    Re-express adult deaths cumulated in wide classes as 5-year classes.

    A monotone piecewise cubic Hermite interpolant (Fritsch-Carlson) is fit
    through the cumulative adult deaths at the class boundaries and
    differenced on a 5-year grid. Monotonicity keeps every interpolated
    class non-negative; the adult total is preserved.

    Args:
        a: Class widths
        Dx: Deaths per class
        cumulated_width: Width every adult class must have (e.g. 10 or 20)

    Returns:
        New (a, Dx) arrays; classes starting before age 20 are untouched
    """
    starts = _start_ages(a)
    adult = starts >= ADULT_AGE

    if not adult.any():
        logger.warning(f"option_spline={cumulated_width} ignored: no classes start at age {ADULT_AGE} or above")
        return a.copy(), Dx.copy()

    adult_widths = a[adult]
    if not np.all(adult_widths == cumulated_width):
        raise ValueError(
            f"option_spline={cumulated_width} requires every class from age {ADULT_AGE} "
            f"on to span {cumulated_width} years, got widths {adult_widths.tolist()}"
        )

    breaks = np.concatenate((starts[adult], [starts[adult][-1] + adult_widths[-1]]))
    cumulative = np.concatenate(([0.0], np.cumsum(Dx[adult])))

    spline = PchipInterpolator(breaks, cumulative)
    grid = np.arange(breaks[0], breaks[-1], SPLINE_OUTPUT_WIDTH, dtype=np.float64)
    grid = np.concatenate((grid, [breaks[-1]]))

    interpolated = spline(grid)
    interpolated[0] = 0.0
    interpolated[-1] = cumulative[-1]

    new_a = np.concatenate((a[~adult], np.diff(grid)))
    new_dx = np.concatenate((Dx[~adult], np.diff(interpolated)))

    logger.debug(f"Spline: {adult.sum()} adult classes -> {len(grid) - 1} classes of {SPLINE_OUTPUT_WIDTH} years")
    return new_a, new_dx


# =============================================================================
# LIFE TABLE CONSTRUCTION
# =============================================================================

def _ax_factors(a: np.ndarray, config: LifeTableConfig) -> np.ndarray:
    factors = np.full(len(a), DEFAULT_AX_FACTOR)
    if not config.agecor:
        return factors

    if config.agecorfac:
        if len(config.agecorfac) > len(a):
            raise ValueError(
                f"{len(config.agecorfac)} agecorfac values given for {len(a)} age classes"
            )
        factors[:len(config.agecorfac)] = config.agecorfac
    else:
        factors[_start_ages(a) < YOUNG_AGE_LIMIT] = YOUNG_AX_FACTOR
    return factors


def build_life_table(age_deaths: Union[pd.DataFrame, Mapping],
                     config: Optional[LifeTableConfig] = None,
                     negative_young_classes: int = 0) -> LifeTable:
    """
    Compute a full life table from class widths and death counts.

    Args:
        age_deaths: DataFrame (or column mapping) with columns 'a' and 'Dx'
        config: Age-correction and spline options (defaults if None)
        negative_young_classes: Number of leading classes allowed a negative
                                death count (corrected tables only)

    Returns:
        LifeTable with columns x, a, Ax, Dx, dx, lx, qx, Lx, Tx, ex, rel_popx
    """
    config = config if config is not None else LifeTableConfig()
    frame = _validate_age_deaths(age_deaths, negative_young_classes)

    a = frame['a'].to_numpy()
    Dx = frame['Dx'].to_numpy()

    if config.option_spline is not None:
        a, Dx = spline_adult_deaths(a, Dx, config.option_spline)

    Ax = a * _ax_factors(a, config)

    dx = Dx / Dx.sum() * 100
    lx = 100 - np.concatenate(([0.0], np.cumsum(dx)[:-1]))
    # Float residue after the last death
    lx = np.where(np.isclose(lx, 0.0, atol=1e-9), 0.0, lx)
    alive = lx > 0

    qx = np.full(len(a), 100.0)
    np.divide(dx, lx, out=qx, where=alive)
    qx[alive] *= 100

    Lx = a * lx - (a - Ax) * dx
    Tx = np.cumsum(Lx[::-1])[::-1]

    ex = np.zeros(len(a))
    np.divide(Tx, lx, out=ex, where=alive)

    rel_popx = Lx / Lx.sum() * 100

    data = pd.DataFrame({
        'x': _class_labels(a),
        'a': a,
        'Ax': Ax,
        'Dx': Dx,
        'dx': dx,
        'lx': lx,
        'qx': qx,
        'Lx': Lx,
        'Tx': Tx,
        'ex': ex,
        'rel_popx': rel_popx,
    }, columns=LIFE_TABLE_COLUMNS)

    logger.debug(f"Life table built: {len(a)} classes, {Dx.sum():.1f} deaths, e0={ex[0]:.2f}")
    return LifeTable(data=data, config=config)


def life_table(data: Union[pd.DataFrame, Mapping[str, pd.DataFrame]],
               agecor: bool = True,
               agecorfac: Sequence[float] = (),
               option_spline: Optional[int] = None,
               group: Optional[str] = None) -> Union[LifeTable, LifeTableList]:
    """
    Build one life table, or one per group.

    Args:
        data: a/Dx DataFrame, or a mapping of name -> a/Dx DataFrame
        agecor: Correct Ax for the youngest classes
        agecorfac: Explicit Ax factors from the first class onward
        option_spline: Width of cumulated adult classes to spline (None = off)
        group: Column of ``data`` whose values split it into separate tables

    Returns:
        LifeTable for a single DataFrame, LifeTableList otherwise
    """
    config = LifeTableConfig(agecor=agecor, agecorfac=agecorfac,
                             option_spline=option_spline)

    if isinstance(data, pd.DataFrame):
        if group is None:
            return build_life_table(data, config)
        if group not in data.columns:
            raise ValueError(f"Grouping column not found: {group}")
        tables: Dict[str, LifeTable] = {
            str(name): build_life_table(subset[['a', 'Dx']], config)
            for name, subset in data.groupby(group, sort=False)
        }
        return LifeTableList(tables)

    if isinstance(data, Mapping):
        return LifeTableList(
            (str(name), build_life_table(frame, config)) for name, frame in data.items()
        )

    raise LifeTableTypeError(
        f"Cannot build a life table from {type(data).__name__}; "
        "expected a DataFrame or a mapping of DataFrames"
    )
