import pytest

from geigerscan.format import CrateDetectionStatus
from geigerscan.report import CounterBlock
from geigerscan.totals import TotalPackageCounts


@pytest.mark.parametrize(
    "forbids, allows, unsafe, expected",
    [
        (0, 0, 1, CrateDetectionStatus.UNSAFE_DETECTED),
        (1, 0, 0, CrateDetectionStatus.NONE_DETECTED_FORBIDS_UNSAFE),
        (4, 1, 0, CrateDetectionStatus.NONE_DETECTED_ALLOWS_UNSAFE),
    ],
)
def test_get_total_detection_status(forbids, allows, unsafe, expected):
    totals = TotalPackageCounts(
        none_detected_forbids_unsafe=forbids,
        none_detected_allows_unsafe=allows,
        unsafe_detected=unsafe,
        total_counter_block=CounterBlock(),
        total_unused_counter_block=CounterBlock(),
    )
    assert totals.get_total_detection_status() is expected


def test_no_packages_counts_as_allowing_unsafe():
    assert (
        TotalPackageCounts().get_total_detection_status()
        is CrateDetectionStatus.NONE_DETECTED_ALLOWS_UNSAFE
    )


def test_unsafe_wins_over_everything():
    totals = TotalPackageCounts(
        none_detected_forbids_unsafe=3, none_detected_allows_unsafe=2, unsafe_detected=1
    )
    assert totals.get_total_detection_status() is CrateDetectionStatus.UNSAFE_DETECTED


def test_defaults_start_empty():
    totals = TotalPackageCounts()
    assert totals.total_counter_block == CounterBlock()
    assert totals.total_unused_counter_block == CounterBlock()
    assert (totals.none_detected_forbids_unsafe, totals.unsafe_detected) == (0, 0)