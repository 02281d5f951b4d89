"""
Shared fixtures: a small WMM-2020 coefficient set truncated at degree 3.
"""

import threading

import pytest

from magnetic_field_model import DeclinationService
from model_cache import ModelCache
from wmm_coefficients import parse_cof

SAMPLE_COF = """\
    2020.0            WMM-2020        12/10/2019
  1  0  -29404.5       0.0        6.7        0.0
  1  1   -1450.7    4652.9        7.7      -25.1
  2  0   -2500.0       0.0      -11.5        0.0
  2  1    2982.0   -2991.6       -7.1      -30.2
  2  2    1676.8    -734.8       -2.2      -23.9
  3  0    1363.9       0.0        2.8        0.0
  3  1   -2381.0     -82.2       -6.2        5.7
  3  2    1236.2     241.8        3.4       -1.0
  3  3     525.7    -542.9      -12.2        1.1
999999999999999999999999999999999999999999999999
999999999999999999999999999999999999999999999999
"""

SAMPLE_ROW_COUNT = 9


class CountingSource:
    """Coefficient source that records how often it is read."""

    def __init__(self, text=SAMPLE_COF):
        self.text = text
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.text


class SlowSource(CountingSource):
    """Blocks until released so that callers pile up on the in-flight load."""

    def __init__(self, text=SAMPLE_COF):
        super().__init__(text)
        self.release = threading.Event()

    def __call__(self):
        self.calls += 1
        self.release.wait(timeout=5)
        return self.text


class FlakySource(CountingSource):
    """Fails on the first read, succeeds afterwards."""

    def __call__(self):
        self.calls += 1
        if self.calls == 1:
            raise OSError("asset not ready")
        return self.text


@pytest.fixture
def sample_model():
    return parse_cof(SAMPLE_COF)


@pytest.fixture
def source():
    return CountingSource()


@pytest.fixture
def service(source):
    return DeclinationService(ModelCache(source))
