"""Scoring, pass/fail labelling and the per-domain breakdown."""
import random

from aceprep.scoring import breakdown_by_domain, is_passing, percentage, practice_summary, result_label, score

from conftest import build_bank


def test_unanswered_never_counts_as_correct():
    bank = build_bank({"a": 4})
    result = score(bank, {})
    assert (result.correct, result.total, result.percentage) == (0, 4, 0)


def test_only_exact_matches_count():
    bank = build_bank({"a": 4})
    questions = list(bank)
    answers = {questions[0].id: questions[0].correct, questions[1].id: (questions[1].correct + 1) % 4}
    result = score(questions, answers)
    assert result.correct == 1
    assert result.percentage == 25


def test_scoring_is_idempotent_and_bounded():
    bank = build_bank({"a": 13, "b": 8})
    rng = random.Random(11)
    for _ in range(50):
        answers = {q.id: rng.randrange(4) for q in bank if rng.random() < 0.7}
        first, second = score(bank, answers), score(bank, answers)
        assert first == second
        assert isinstance(first.percentage, int)
        assert 0 <= first.percentage <= 100


def test_percentage_rounds_halves_up():
    assert percentage(1, 8) == 13  # 12.5
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(30, 50) == 60
    assert percentage(0, 0) == 0


def test_breakdown_tracks_answered_separately_from_correct():
    bank = build_bank({"alpha": 3, "beta": 2})
    qs = list(bank)
    answers = {
        qs[0].id: qs[0].correct,
        qs[1].id: (qs[1].correct + 1) % 4,
        qs[3].id: qs[3].correct,
    }
    breakdown = breakdown_by_domain(qs, answers)

    assert list(breakdown) == ["alpha", "beta"]
    assert (breakdown["alpha"].correct, breakdown["alpha"].answered, breakdown["alpha"].total) == (1, 2, 3)
    assert (breakdown["beta"].correct, breakdown["beta"].answered, breakdown["beta"].total) == (1, 1, 2)


def test_practice_summary_totals_match_breakdown():
    bank = build_bank({"alpha": 3, "beta": 2})
    qs = list(bank)
    answers = {q.id: q.correct for q in qs[:3]}
    summary = practice_summary(qs, answers, time_spent=95)

    assert (summary.correct, summary.total, summary.answered, summary.time_spent) == (3, 5, 3, 95)
    assert sum(d.correct for d in summary.breakdown.values()) == summary.correct
    assert sum(d.total for d in summary.breakdown.values()) == summary.total


def test_pass_threshold_is_seventy_percent():
    assert is_passing(70)
    assert not is_passing(69)
    assert result_label(85) == "PASS"
    assert result_label(12) == "FAIL"
