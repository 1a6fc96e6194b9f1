"""
Scoring: correctness, percentage, pass/fail label and per-domain breakdown.
Unanswered questions never count as correct.
"""
import math
from typing import Dict, Iterable, Mapping

from aceprep import config
from aceprep.models import DomainScore, PracticeSummary, Question, ScoreResult


def percentage(correct: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 for an empty session."""
    if total <= 0:
        return 0
    return int(math.floor(correct * 100 / total + 0.5))


def score(questions: Iterable[Question], answers: Mapping[int, int]) -> ScoreResult:
    questions = list(questions)
    correct = sum(1 for q in questions if q.is_correct(answers.get(q.id)))
    return ScoreResult(correct=correct, total=len(questions), percentage=percentage(correct, len(questions)))


def breakdown_by_domain(questions: Iterable[Question], answers: Mapping[int, int]) -> Dict[str, DomainScore]:
    """Domain -> correct/total/answered, in order of first appearance."""
    tallies: Dict[str, list] = {}
    for q in questions:
        row = tallies.setdefault(q.domain, [0, 0, 0])
        selected = answers.get(q.id)
        row[1] += 1
        if selected is not None:
            row[2] += 1
            if q.is_correct(selected):
                row[0] += 1
    return {d: DomainScore(correct=c, total=t, answered=a) for d, (c, t, a) in tallies.items()}


def practice_summary(questions: Iterable[Question], answers: Mapping[int, int], time_spent: int) -> PracticeSummary:
    questions = list(questions)
    result = score(questions, answers)
    return PracticeSummary(
        correct=result.correct,
        total=result.total,
        answered=sum(1 for q in questions if answers.get(q.id) is not None),
        time_spent=time_spent,
        breakdown=breakdown_by_domain(questions, answers),
    )


def is_passing(pct: int, threshold: int = config.PASS_THRESHOLD) -> bool:
    return pct >= threshold


def result_label(pct: int, threshold: int = config.PASS_THRESHOLD) -> str:
    return "PASS" if is_passing(pct, threshold) else "FAIL"
