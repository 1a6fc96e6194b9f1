#!/usr/bin/env python3
"""
Integration test: full exam + practice workflow against the bundled question bank.
Demonstrates:
1. Loading the bank and restoring nothing on a clean store
2. Exam with flag confirmation, scoring and history
3. Practice with immediate feedback
4. CSV export and history review
"""
import csv
import io
import logging
import random

from aceprep.bank import load_default_bank
from aceprep.randomizer import Randomizer
from aceprep.scoring import result_label
from aceprep.selection import SessionSelector
from aceprep.session import Mode, SessionState
from aceprep.storage import MemoryStore

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def test_full_workflow():
    """End-to-end run over the default bank: exam, history review, practice."""

    logger.info("=" * 70)
    logger.info("ACE Prep - Integration Test")
    logger.info("=" * 70)

    bank = load_default_bank()
    assert len(bank) > 0
    logger.info(f"\n✓ Loaded {len(bank)} questions across {len(bank.domains())} domains")

    store = MemoryStore()
    engine = SessionState(bank, store, selector=SessionSelector(bank, Randomizer(random.Random(2026))))
    assert engine.restore() is False
    logger.info("✓ Clean store: nothing to resume")

    # ----- Exam -----
    engine.start_exam()
    session = engine.session
    assert len(session) == min(50, len(bank))
    logger.info(f"✓ Exam started with {len(session)} questions, {engine.remaining_seconds}s on the clock")

    logger.info("\n--- Answering Questions ---")
    for i, qid in enumerate(session.question_ids):
        engine.go_to(i)
        question = bank.get(qid)
        perm = session.permutations[qid]
        # every third question answered wrong
        target = question.correct if i % 3 else next(o for o in perm if o != question.correct)
        engine.select_answer(perm.index(target))
        status = "✓ CORRECT" if question.is_correct(target) else "✗ INCORRECT"
        logger.info(f"{status} | Q{qid:<4} {question.question[:50]}")

    engine.go_to(1)
    engine.toggle_flag()
    counts = engine.submit_exam()
    assert counts is not None and counts.flagged == 1
    logger.info(f"\n✓ Submit paused for {counts.flagged} flagged question(s)")

    entry = engine.confirm_submit()
    expected_correct = sum(1 for i in range(len(session)) if i % 3)
    assert engine.mode is Mode.RESULTS
    assert entry.score == expected_correct
    assert 0 <= entry.percentage <= 100

    logger.info("\n--- Exam Results ---")
    logger.info(f"  Score: {entry.score}/{entry.total}")
    logger.info(f"  Percentage: {entry.percentage}%")
    logger.info(f"  Pass Status: {result_label(entry.percentage)}")

    logger.info("\n--- Domain Breakdown ---")
    breakdown = engine.exam_breakdown()
    for domain, stats in breakdown.items():
        logger.info(f"  {domain:<50} | {stats.correct}/{stats.total}")
    assert sum(s.total for s in breakdown.values()) == entry.total

    rows = list(csv.reader(io.StringIO(engine.export_csv())))
    assert len(rows) == entry.total + 1
    logger.info(f"\n✓ Exported {len(rows) - 1} rows to CSV")

    # ----- History -----
    engine.open_history()
    assert [e.id for e in engine.state.entries] == [entry.id]
    engine.review_history(entry.id)
    items = engine.review_items()
    assert sum(1 for item in items if item.is_correct) == entry.score
    logger.info("✓ History review matches the stored attempt")
    engine.return_to_landing()

    # ----- Practice -----
    engine.open_practice_config()
    engine.start_practice(5)
    logger.info("\n--- Practice ---")
    for i in range(len(engine.session)):
        engine.go_to(i)
        feedback = engine.select_answer(0)
        assert feedback is not None and feedback.explanation
        logger.info(f"  Q{feedback.question_id:<4} {'✓' if feedback.is_correct else '✗'} {feedback.explanation[:60]}")
    summary = engine.finish_practice()
    assert summary.answered == summary.total == 5
    assert len(engine.history.load()) == 1
    logger.info(f"✓ Practice: {summary.correct}/{summary.total} correct")

    logger.info("\n" + "=" * 70)
    logger.info("✓ Integration test completed successfully")
    logger.info("=" * 70)


if __name__ == "__main__":
    test_full_workflow()
