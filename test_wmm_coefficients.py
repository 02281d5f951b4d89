"""
Tests for the WMM coefficient file parser
"""

import dataclasses

import numpy as np
import pytest

from conftest import SAMPLE_COF, SAMPLE_ROW_COUNT
from wmm_coefficients import (ModelLoadError, TriangularIndex, array_size, idx,
                              iter_coefficient_rows, parse_cof)

SYNTHETIC_COF = """2020.0
1 0 -29000 0 10 0
1 1 -1500 4800 12 -20
99999
2 0 123 0 0 0
"""


def test_idx_maps_degree_two_pairs_to_consecutive_slots():
    pairs = [(0, 0), (1, 0), (1, 1), (2, 0), (2, 1), (2, 2)]
    assert [idx(n, m) for n, m in pairs] == [0, 1, 2, 3, 4, 5]


def test_idx_is_injective_and_in_bounds():
    index = TriangularIndex(12)
    slots = [index(n, m) for n, m in index.pairs()]
    assert len(slots) == len(set(slots))
    assert max(slots) < array_size(12)


@pytest.mark.skipif(not __debug__, reason="index checks are assertions")
@pytest.mark.parametrize("n, m", [(3, 4), (2, -1), (13, 0)])
def test_triangular_index_rejects_invalid_pairs(n, m):
    with pytest.raises(AssertionError):
        TriangularIndex(12)(n, m)


def test_parse_synthetic_file():
    model = parse_cof(SYNTHETIC_COF)

    assert model.epoch == 2020.0
    assert model.nmax == 1
    assert len(model.g) == array_size(1)
    assert model.g[idx(1, 0)] == -29000
    assert model.h[idx(1, 1)] == 4800
    assert model.dg[idx(1, 1)] == 12
    assert model.dh[idx(1, 1)] == -20


def test_lines_after_end_marker_are_ignored():
    model = parse_cof(SYNTHETIC_COF)
    # "2 0 ..." follows the 99999 line
    assert model.nmax == 1
    assert 123 not in model.g


def test_invalid_rows_are_skipped_without_error():
    text = """2020.0
0 0 1 2 3 4
3 5 1 2 3 4
1 -1 1 2 3 4
1 0 nan 0 0 0
1 0 inf 0 0 0
1 0 -29000
a b 1 2 3 4
1 0 -29000 0 10 0
"""
    model = parse_cof(text)

    assert model.nmax == 1
    assert model.g[idx(1, 0)] == -29000
    assert model.g[idx(0, 0)] == 0
    rows = list(iter_coefficient_rows(text.splitlines()[1:]))
    assert len(rows) == 1


def test_sample_file_accepts_every_row():
    rows = list(iter_coefficient_rows(SAMPLE_COF.splitlines()[1:]))
    assert len(rows) == SAMPLE_ROW_COUNT
    assert parse_cof(SAMPLE_COF).nmax == 3


def test_header_metadata(sample_model):
    assert sample_model.epoch == 2020.0
    assert sample_model.model_name == "WMM-2020"
    assert sample_model.release_date == "12/10/2019"
    assert parse_cof(SYNTHETIC_COF).model_name is None


def test_blank_lines_and_bytes_input():
    model = parse_cof(("\n\n" + SYNTHETIC_COF.replace("\n", "\r\n")).encode("utf-8"))
    assert model.epoch == 2020.0
    assert model.nmax == 1


@pytest.mark.parametrize("text", ["", "   \n\n  \n"])
def test_empty_file_raises(text):
    with pytest.raises(ModelLoadError):
        parse_cof(text)


@pytest.mark.parametrize("header", ["abc WMM", "nan", "inf"])
def test_invalid_epoch_raises(header):
    with pytest.raises(ModelLoadError):
        parse_cof(header + "\n1 0 -29000 0 10 0\n")


def test_non_numeric_epoch_keeps_the_parse_error_as_cause():
    with pytest.raises(ModelLoadError) as excinfo:
        parse_cof("abc WMM\n1 0 -29000 0 10 0\n")
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert excinfo.value.__suppress_context__


def test_file_without_rows_raises():
    with pytest.raises(ModelLoadError):
        parse_cof("2020.0 WMM-2020\n99999\n")


def test_model_is_immutable(sample_model):
    with pytest.raises(ValueError):
        sample_model.g[0] = 1.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        sample_model.epoch = 2025.0


def test_coefficients_apply_secular_variation(sample_model):
    g, h = sample_model.coefficients(1, 1, dt=2.0)
    assert g == pytest.approx(-1450.7 + 2 * 7.7)
    assert h == pytest.approx(4652.9 - 2 * 25.1)
    np.testing.assert_allclose(sample_model.coefficients(2, 0), (-2500.0, 0.0))
