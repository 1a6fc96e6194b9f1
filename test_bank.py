"""Question bank loading, lookups and the coverage report."""
import json

import pytest

from aceprep.bank import OFFICIAL_DOMAIN_WEIGHTS, QuestionBank, coverage_report, load_default_bank, subdomain_counts
from aceprep.models import Question

from conftest import DOMAIN_SIZES, build_bank, make_question


def test_default_bank_loads_and_is_valid():
    bank = load_default_bank()
    assert len(bank) > 0
    assert set(bank.domains()) <= set(OFFICIAL_DOMAIN_WEIGHTS)
    for q in bank:
        assert 0 <= q.correct < len(q.options)


def test_from_file_accepts_list_object_and_jsonl(tmp_path):
    records = [make_question(i, "d").to_dict() for i in range(1, 4)]
    plain = tmp_path / "plain.json"
    plain.write_text(json.dumps(records))
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"questions": records}))
    lines = tmp_path / "bank.jsonl"
    lines.write_text("\n".join(json.dumps(r) for r in records) + "\n\n")

    for path in (plain, wrapped, lines):
        bank = QuestionBank.from_file(path)
        assert bank.ids() == [1, 2, 3]
        assert bank.get(2) == make_question(2, "d")


def test_from_file_rejects_missing_file_and_bad_records(tmp_path):
    with pytest.raises(FileNotFoundError):
        QuestionBank.from_file(tmp_path / "nope.json")
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([{"id": 1, "options": ["only one"], "correct": 0}]))
    with pytest.raises(ValueError):
        QuestionBank.from_file(bad)


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError):
        QuestionBank([make_question(1, "a"), make_question(1, "b")])


def test_domains_keep_first_appearance_order():
    bank = QuestionBank([make_question(1, "b"), make_question(2, "a"), make_question(3, "b")])
    assert bank.domains() == ["b", "a"]
    assert bank.domain_counts() == {"b": 2, "a": 1}
    assert [q.id for q in bank.by_domain("b")] == [1, 3]
    assert bank.by_domain("zzz") == []


def test_subset_ignores_unknown_domains():
    bank = build_bank({"a": 2, "b": 3, "c": 1})
    subset = bank.subset(["b", "missing"])
    assert subset.domains() == ["b"]
    assert len(subset) == 3
    assert 1 not in subset


def test_question_record_accepts_both_explanation_spellings():
    base = {"id": 9, "domain": "d", "question": "?", "options": ["a", "b", "c"], "correct": 0}
    camel = Question.from_dict(dict(base, wrongExplanations={"2": "nope"}))
    snake = Question.from_dict(dict(base, wrong_explanations={2: "nope"}))
    assert camel == snake
    assert camel.explanation_for(2) == "nope"
    assert camel.explanation_for(1) == camel.explanation
    assert camel.explanation_for(None) == camel.explanation


def test_coverage_report_against_official_weights():
    bank = build_bank(DOMAIN_SIZES)
    rows = coverage_report(bank, target_total=500)

    assert [r.domain for r in rows] == list(OFFICIAL_DOMAIN_WEIGHTS)
    setup = rows[0]
    assert (setup.current, setup.target_count, setup.gap) == (23, 115, 92)
    assert setup.current_pct == pytest.approx(23.0)
    assert sum(r.target_count for r in rows) == 500


def test_coverage_report_lists_unweighted_domains_last():
    bank = build_bank({"Configuring access and security": 2, "Trivia": 1})
    rows = coverage_report(bank)
    assert rows[-1].domain == "Trivia"
    assert (rows[-1].target_pct, rows[-1].target_count, rows[-1].gap) == (0, 0, -1)


def test_subdomain_counts_sorted_by_frequency():
    bank = QuestionBank([
        Question(id=i, domain="d", subdomain=sub, question="?", options=("a", "b"), correct=0)
        for i, sub in enumerate(["iam", "gke", "iam", "", "iam", "gke"], start=1)
    ])
    assert list(subdomain_counts(bank).items()) == [("iam", 3), ("gke", 2), ("(blank)", 1)]
