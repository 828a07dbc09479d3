"""
XSELECT Test Configuration and Fixtures

Shared location data (country -> province -> city) and store helpers.
"""

import pytest
from typing import Callable, List

from xselect.core.adapter import DictAdapter
from xselect.core.types import FieldConfig, SelectOption


COUNTRY_OPTIONS = [
    SelectOption("Vietnam", "VN"),
    SelectOption("United States", "US"),
]

PROVINCE_OPTIONS = [
    SelectOption("Ho Chi Minh", "HCM", parent_value="VN"),
    SelectOption("Ha Noi", "HN", parent_value="VN"),
    SelectOption("California", "CA", parent_value="US"),
    SelectOption("Texas", "TX", parent_value="US"),
]

CITY_OPTIONS = [
    SelectOption("District 1", "D1", parent_value="HCM"),
    SelectOption("District 7", "D7", parent_value="HCM"),
    SelectOption("Hoan Kiem", "HK", parent_value="HN"),
    SelectOption("Los Angeles", "LA", parent_value="CA"),
]


@pytest.fixture
def country_options() -> List[SelectOption]:
    return list(COUNTRY_OPTIONS)


@pytest.fixture
def province_options() -> List[SelectOption]:
    return list(PROVINCE_OPTIONS)


@pytest.fixture
def city_options() -> List[SelectOption]:
    return list(CITY_OPTIONS)


@pytest.fixture
def location_configs() -> List[FieldConfig]:
    """Single-select country -> province -> city chain with static options."""
    return [
        FieldConfig("country", options=COUNTRY_OPTIONS),
        FieldConfig("province", options=PROVINCE_OPTIONS, depends_on="country"),
        FieldConfig("city", options=CITY_OPTIONS, depends_on="province"),
    ]


@pytest.fixture
def multi_location_configs() -> List[FieldConfig]:
    """Multi-select country -> province -> city chain with static options."""
    return [
        FieldConfig("country", options=COUNTRY_OPTIONS, mode="multiple"),
        FieldConfig("province", options=PROVINCE_OPTIONS, depends_on="country", mode="multiple"),
        FieldConfig("city", options=CITY_OPTIONS, depends_on="province", mode="multiple"),
    ]


@pytest.fixture
def dict_adapter() -> DictAdapter:
    return DictAdapter()


@pytest.fixture
def manual_defer():
    """
    Deferral that only records callbacks.

    Call run() to execute what was deferred, as the next loop turn would.
    """
    class ManualDefer:
        def __init__(self):
            self.callbacks: List[Callable[[], None]] = []

        def __call__(self, callback: Callable[[], None]) -> None:
            self.callbacks.append(callback)

        def run(self) -> None:
            callbacks, self.callbacks = self.callbacks, []
            for callback in callbacks:
                callback()

    return ManualDefer()
