"""
tests/test_life_table.py - Life Table Constructor Tests

Hand-checked values for a three-class table:
    a  = [5, 5, 10],  Dx = [10, 10, 20]
    dx = [25, 25, 50], lx = [100, 75, 50]
    With Ax = a/2: Lx = [437.5, 312.5, 250], Tx = [1000, 562.5, 250],
                   ex = [10, 7.5, 5]

Author: Palaeodemography Pipeline Project
License: MIT
"""

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError

from lifetable_correction.config import LifeTableConfig
from lifetable_correction.exceptions import LifeTableTypeError
from lifetable_correction.life_table import (
    LIFE_TABLE_COLUMNS,
    LifeTable,
    LifeTableList,
    build_life_table,
    life_table,
    spline_adult_deaths,
)


@pytest.fixture
def small_table():
    return pd.DataFrame({'a': [5, 5, 10], 'Dx': [10, 10, 20]})


class TestLifeTableColumns:
    """Column arithmetic with the midpoint convention (agecor=False)."""

    def test_column_order(self, small_table):
        lt = build_life_table(small_table, LifeTableConfig(agecor=False))
        assert list(lt.to_frame().columns) == LIFE_TABLE_COLUMNS

    def test_labels(self, small_table):
        lt = build_life_table(small_table)
        assert lt.column('x').tolist() == ['0--4', '5--9', '10--19']

    def test_midpoint_values(self, small_table):
        lt = build_life_table(small_table, LifeTableConfig(agecor=False))
        frame = lt.to_frame()

        np.testing.assert_allclose(frame['Ax'], [2.5, 2.5, 5.0])
        np.testing.assert_allclose(frame['dx'], [25, 25, 50])
        np.testing.assert_allclose(frame['lx'], [100, 75, 50])
        np.testing.assert_allclose(frame['qx'], [25, 100 / 3, 100])
        np.testing.assert_allclose(frame['Lx'], [437.5, 312.5, 250])
        np.testing.assert_allclose(frame['Tx'], [1000, 562.5, 250])
        np.testing.assert_allclose(frame['ex'], [10, 7.5, 5])
        np.testing.assert_allclose(frame['rel_popx'], [43.75, 31.25, 25])

    def test_last_class_probability_is_one(self, small_table):
        lt = build_life_table(small_table)
        assert lt.column('qx')[-1] == pytest.approx(100.0)

    def test_trailing_empty_classes(self):
        lt = build_life_table(pd.DataFrame({'a': [5, 5, 5], 'Dx': [10, 10, 0]}))
        frame = lt.to_frame()

        assert frame['lx'].iloc[-1] == 0
        assert frame['qx'].iloc[-1] == 100
        assert frame['ex'].iloc[-1] == 0
        assert not frame.isna().any().any()

    def test_accepts_column_mapping(self):
        lt = build_life_table({'a': [5, 5], 'Dx': [3, 7]})
        assert len(lt) == 2
        np.testing.assert_array_equal(lt.Dx, [3.0, 7.0])


class TestAgeCorrection:
    """Ax for decedents of the youngest classes."""

    def test_default_young_classes_one_third(self, small_table):
        lt = build_life_table(small_table)
        np.testing.assert_allclose(lt.column('Ax'), [5 / 3, 2.5, 5.0])
        assert lt.column('Lx')[0] == pytest.approx(500 - (5 - 5 / 3) * 25)

    def test_default_covers_one_and_four_year_classes(self):
        lt = build_life_table(pd.DataFrame({'a': [1, 4, 5], 'Dx': [5, 5, 10]}))
        np.testing.assert_allclose(lt.column('Ax'), [1 / 3, 4 / 3, 2.5])

    def test_explicit_factors(self, small_table):
        config = LifeTableConfig(agecorfac=[0.2, 0.4])
        lt = build_life_table(small_table, config)
        np.testing.assert_allclose(lt.column('Ax'), [1.0, 2.0, 5.0])

    def test_factors_ignored_without_agecor(self, small_table):
        config = LifeTableConfig(agecor=False, agecorfac=[0.2])
        lt = build_life_table(small_table, config)
        np.testing.assert_allclose(lt.column('Ax'), [2.5, 2.5, 5.0])

    def test_too_many_factors(self, small_table):
        config = LifeTableConfig(agecorfac=[0.2, 0.3, 0.4, 0.5])
        with pytest.raises(ValueError, match="agecorfac"):
            build_life_table(small_table, config)


class TestConfig:
    """Validated, immutable construction options."""

    def test_defaults(self):
        config = LifeTableConfig()
        assert config.agecor is True
        assert config.agecorfac == ()
        assert config.option_spline is None

    def test_factor_out_of_range(self):
        with pytest.raises(ValidationError):
            LifeTableConfig(agecorfac=[0.2, 1.5])

    def test_non_positive_spline(self):
        with pytest.raises(ValidationError):
            LifeTableConfig(option_spline=0)

    def test_none_factors(self):
        assert LifeTableConfig(agecorfac=None).agecorfac == ()

    def test_frozen(self):
        config = LifeTableConfig()
        with pytest.raises(ValidationError):
            config.agecor = False


class TestSpline:
    """Adult classes cumulated in 10-year blocks re-expressed in 5-year classes."""

    A = np.array([5, 5, 5, 5, 10, 10, 10], dtype=float)
    DX = np.array([10, 5, 3, 2, 20, 30, 30], dtype=float)

    def test_adult_classes_resampled(self):
        new_a, new_dx = spline_adult_deaths(self.A, self.DX, 10)

        np.testing.assert_array_equal(new_a, [5.0] * 10)
        np.testing.assert_array_equal(new_dx[:4], self.DX[:4])
        assert new_dx.sum() == pytest.approx(self.DX.sum())
        assert np.all(new_dx >= 0)

    def test_pairs_sum_to_original_classes(self):
        _, new_dx = spline_adult_deaths(self.A, self.DX, 10)
        np.testing.assert_allclose(new_dx[4::2] + new_dx[5::2], [20, 30, 30])

    def test_inputs_unchanged(self):
        a, dx = self.A.copy(), self.DX.copy()
        spline_adult_deaths(a, dx, 10)
        np.testing.assert_array_equal(a, self.A)
        np.testing.assert_array_equal(dx, self.DX)

    def test_width_mismatch(self):
        with pytest.raises(ValueError, match="option_spline=20"):
            spline_adult_deaths(self.A, self.DX, 20)

    def test_no_adult_classes(self, caplog):
        a = np.array([5.0, 5.0])
        dx = np.array([4.0, 6.0])
        new_a, new_dx = spline_adult_deaths(a, dx, 10)

        np.testing.assert_array_equal(new_a, a)
        np.testing.assert_array_equal(new_dx, dx)
        assert "ignored" in caplog.text

    def test_via_constructor(self):
        lt = build_life_table(pd.DataFrame({'a': self.A, 'Dx': self.DX}),
                              LifeTableConfig(option_spline=10))
        assert len(lt) == 10
        assert lt.column('x')[-1] == '45--49'


class TestValidation:
    """Malformed age/death input is rejected."""

    def test_missing_column(self):
        with pytest.raises(ValueError, match="Dx"):
            build_life_table(pd.DataFrame({'a': [5, 5]}))

    def test_negative_deaths(self):
        with pytest.raises(ValueError, match="non-negative"):
            build_life_table(pd.DataFrame({'a': [5, 5], 'Dx': [1, -1]}))

    def test_negative_young_classes_allowed(self):
        lt = build_life_table(pd.DataFrame({'a': [1, 4, 5], 'Dx': [3, -1, 10]}),
                              negative_young_classes=2)
        np.testing.assert_array_equal(lt.Dx, [3.0, -1.0, 10.0])

    def test_negative_beyond_young_classes(self):
        with pytest.raises(ValueError, match="non-negative"):
            build_life_table(pd.DataFrame({'a': [1, 4, 5], 'Dx': [3, 1, -10]}),
                             negative_young_classes=2)

    def test_zero_width(self):
        with pytest.raises(ValueError, match="positive"):
            build_life_table(pd.DataFrame({'a': [5, 0], 'Dx': [1, 1]}))

    def test_no_deaths(self):
        with pytest.raises(ValueError, match="Total"):
            build_life_table(pd.DataFrame({'a': [5, 5], 'Dx': [0, 0]}))

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            build_life_table(pd.DataFrame({'a': [], 'Dx': []}))

    def test_wrong_type(self):
        with pytest.raises(LifeTableTypeError):
            build_life_table([5, 5, 10])


class TestLifeTableObjects:
    """Immutability of tables and grouping into lists."""

    def test_accessors_return_copies(self, small_table):
        lt = build_life_table(small_table)
        dx = lt.Dx
        dx[0] = 999
        frame = lt.to_frame()
        frame.loc[0, 'Dx'] = 999

        assert lt.Dx[0] == 10

    def test_source_frame_not_modified(self, small_table):
        before = small_table.copy()
        build_life_table(small_table, LifeTableConfig(option_spline=None))
        pd.testing.assert_frame_equal(small_table, before)

    def test_age_deaths_round_trip(self, small_table):
        lt = build_life_table(small_table)
        rebuilt = build_life_table(lt.age_deaths(), lt.config)
        pd.testing.assert_frame_equal(rebuilt.to_frame(), lt.to_frame())

    def test_start_ages(self, small_table):
        lt = build_life_table(small_table)
        np.testing.assert_array_equal(lt.start_ages, [0, 5, 10])

    def test_grouped(self):
        data = pd.DataFrame({
            'site': ['north', 'north', 'south', 'south'],
            'a': [5, 5, 5, 5],
            'Dx': [3, 7, 4, 6],
        })
        tables = life_table(data, group='site')

        assert isinstance(tables, LifeTableList)
        assert list(tables) == ['north', 'south']
        np.testing.assert_array_equal(tables['south'].Dx, [4.0, 6.0])

    def test_missing_group_column(self, small_table):
        with pytest.raises(ValueError, match="Grouping"):
            life_table(small_table, group='sex')

    def test_mapping_of_frames(self, small_table):
        tables = life_table({'b': small_table, 'a': small_table}, agecor=False)

        assert list(tables) == ['b', 'a']
        assert tables['a'].config.agecor is False

    def test_single_frame(self, small_table):
        assert isinstance(life_table(small_table), LifeTable)

    def test_invalid_input(self):
        with pytest.raises(LifeTableTypeError):
            life_table("not a table")

    def test_list_rejects_other_values(self):
        with pytest.raises(LifeTableTypeError):
            LifeTableList({'x': pd.DataFrame({'a': [5], 'Dx': [1]})})
