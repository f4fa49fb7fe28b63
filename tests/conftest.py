"""Shared fixtures for the analyzer test suite."""
from datetime import datetime
from typing import Optional, Sequence, Tuple

import pytest

from data_loader import MatchRecordStore, sample_configuration, sample_store
from models import Category, MatchConfiguration
from rates import ContextAdjustment, ExpectedRates, FormationAdjustment

REFERENCE_TIME = datetime(2024, 5, 1, 15, 0)

Scores = Tuple[Sequence[int], Sequence[int]]


def build_store(h2h: Optional[Scores] = None,
                side_a: Optional[Scores] = None,
                side_b: Optional[Scores] = None) -> MatchRecordStore:
    store = MatchRecordStore()
    for category, pair in ((Category.H2H, h2h),
                           (Category.SIDE_A_OTHER, side_a),
                           (Category.SIDE_B_OTHER, side_b)):
        if pair is not None:
            store.add_records(category, pair[0], pair[1], reference_time=REFERENCE_TIME)
    return store


def make_rates(side_a: float, side_b: float) -> ExpectedRates:
    return ExpectedRates(
        side_a=side_a,
        side_b=side_b,
        base_side_a=side_a,
        base_side_b=side_b,
        formation=FormationAdjustment(),
        context=ContextAdjustment(),
    )


@pytest.fixture
def reference_time() -> datetime:
    return REFERENCE_TIME


@pytest.fixture
def store() -> MatchRecordStore:
    return sample_store(reference_time=REFERENCE_TIME)


@pytest.fixture
def configuration() -> MatchConfiguration:
    return sample_configuration()


@pytest.fixture
def neutral_configuration() -> MatchConfiguration:
    return MatchConfiguration(side_a_name="Harbour", side_b_name="Valley")


@pytest.fixture
def balanced_store() -> MatchRecordStore:
    """Both sides average 2.5 scored and conceded, all draws"""
    return build_store(side_a=([2, 3], [2, 3]), side_b=([3, 2], [3, 2]))
