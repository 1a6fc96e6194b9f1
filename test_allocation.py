"""Allocation: conservation, fairness and clamping of domain-proportional sample sizes."""
import pytest

from aceprep.allocation import allocate, clamp_count

BANK_CONFIGS = [
    {"only": 7},
    {"a": 5, "b": 5},
    {"a": 23, "b": 30, "c": 28},
    {"a": 23, "b": 30, "c": 28, "d": 19},
    {"tiny": 1, "small": 2, "huge": 97},
    {"a": 1, "b": 1, "c": 1, "d": 1, "e": 1},
    {"a": 3, "b": 0, "c": 4},
]


@pytest.mark.parametrize("counts", BANK_CONFIGS)
def test_allocation_sums_to_request_without_exceeding_domains(counts):
    bank_size = sum(counts.values())
    for requested in range(1, bank_size + 1):
        allocations = allocate(counts, requested)
        assert sum(a.count for a in allocations) == requested
        for a in allocations:
            assert 0 <= a.count <= a.total == counts[a.domain]


@pytest.mark.parametrize("counts", BANK_CONFIGS)
def test_allocation_within_one_of_ideal_share(counts):
    bank_size = sum(counts.values())
    for requested in range(1, bank_size + 1):
        for a in allocate(counts, requested):
            ideal = a.total * requested / bank_size
            assert abs(a.count - ideal) <= 1


def test_ten_from_three_domains_matches_rounded_shares():
    counts = {"setup": 23, "plan": 30, "operate": 28}
    allocations = allocate(counts, 10)

    assert [a.domain for a in allocations] == ["setup", "plan", "operate"]
    assert sum(a.count for a in allocations) == 10
    for a in allocations:
        assert abs(a.count - round(10 * a.total / 81)) <= 1
    assert {a.domain: a.count for a in allocations} == {"setup": 3, "plan": 4, "operate": 3}


def test_largest_remainders_win_the_extra_units():
    # raw shares 2.3, 3.0, 2.8, 1.9 -> floors 2, 3, 2, 1; the two largest remainders get +1
    counts = {"a": 23, "b": 30, "c": 28, "d": 19}
    assert [a.count for a in allocate(counts, 10)] == [2, 3, 3, 2]


@pytest.mark.parametrize("requested", [0, -1, -50, None, "abc", float("nan"), float("inf"), float("-inf")])
def test_non_positive_or_invalid_request_gives_empty_allocation(requested):
    assert allocate({"a": 10, "b": 5}, requested) == []


@pytest.mark.parametrize("requested", [15, 16, 1000, "20"])
def test_oversized_request_allocates_every_domain_fully(requested):
    allocations = allocate({"a": 10, "b": 5}, requested)
    assert [(a.domain, a.count) for a in allocations] == [("a", 10), ("b", 5)]


def test_empty_bank_allocates_nothing():
    assert allocate({}, 10) == []


def test_clamp_count_coerces_numeric_strings_and_floats():
    assert clamp_count("12", 100) == 12
    assert clamp_count("7.9", 100) == 7
    assert clamp_count(3.2, 100) == 3
    assert clamp_count(500, 100) == 100
    assert clamp_count(True, 100) == 0
    assert clamp_count(float("nan"), 100) == 0
