"""
lifetable_correction/config.py - Life Table Construction Settings

The age-correction and spline options are shared by every life table built
by this package, including the corrected table produced by lt_correction.
They are validated once here and then passed through unchanged.

Ax convention (years lived in a class by those who died in it):
- agecor=False: Ax = a / 2 for every class
- agecor=True, no agecorfac: Ax = a / 3 for classes starting before age 5
- agecor=True with agecorfac: the given factors replace the defaults
  from the first class onward

Author: Palaeodemography Pipeline Project
License: MIT
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Classes starting below this age count as "young" for the default Ax factor
YOUNG_AGE_LIMIT = 5
YOUNG_AX_FACTOR = 1.0 / 3.0
DEFAULT_AX_FACTOR = 0.5


class LifeTableConfig(BaseModel):
    """
    Options forwarded to the life-table constructor.

    Attributes:
        agecor: Correct Ax for the youngest age classes
        agecorfac: Explicit Ax factors, applied from the first class onward
        option_spline: Width of the cumulated adult classes to be
                       re-expressed as 5-year classes (None = no spline)
    """

    model_config = ConfigDict(frozen=True)

    agecor: bool = True
    agecorfac: Tuple[float, ...] = Field(
        default=(),
        description="Ax factors replacing the defaults from the first class onward"
    )
    option_spline: Optional[int] = Field(default=None, gt=0)

    @field_validator('agecorfac', mode='before')
    @classmethod
    def _coerce_factors(cls, value):
        if value is None:
            return ()
        return tuple(value)

    @field_validator('agecorfac')
    @classmethod
    def _check_factors(cls, value: Tuple[float, ...]) -> Tuple[float, ...]:
        for factor in value:
            if not 0 < factor <= 1:
                raise ValueError(f"agecorfac values must lie in (0, 1], got {factor}")
        return value

