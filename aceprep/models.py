"""
Data model for ACE Prep: questions, allocations, history entries and score summaries.
All records are plain dataclasses; the ones persisted as JSON carry to_dict/from_dict.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Question:
    """One multiple-choice question from the bank. Immutable once loaded."""

    id: int
    domain: str
    subdomain: str
    question: str
    options: Tuple[str, ...]
    correct: int
    explanation: str = ""
    wrong_explanations: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict) -> "Question":
        """
        Build a Question from a bank record.

        Accepts the bank file's camelCase ``wrongExplanations`` as well as
        ``wrong_explanations``; JSON object keys are coerced to ints.

        Raises:
            ValueError: the record is missing fields or has impossible values
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Question record must be an object, got {type(raw).__name__}")
        try:
            qid = int(raw["id"])
            options = raw["options"]
            correct = int(raw["correct"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid question record {raw.get('id')!r}: {e}") from e

        if not isinstance(options, (list, tuple)) or len(options) < 2:
            raise ValueError(f"Question {qid}: needs at least 2 options")
        if not 0 <= correct < len(options):
            raise ValueError(f"Question {qid}: correct index {correct} outside 0..{len(options) - 1}")

        wrong_raw = raw.get("wrong_explanations", raw.get("wrongExplanations")) or {}
        if not isinstance(wrong_raw, dict):
            raise ValueError(f"Question {qid}: wrong explanations must be a mapping")
        wrong = {}
        for key, text in wrong_raw.items():
            try:
                idx = int(key)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Question {qid}: bad wrong-explanation key {key!r}") from e
            if not 0 <= idx < len(options):
                raise ValueError(f"Question {qid}: wrong-explanation index {idx} out of range")
            wrong[idx] = str(text)

        return cls(
            id=qid,
            domain=str(raw.get("domain") or "unknown"),
            subdomain=str(raw.get("subdomain") or ""),
            question=str(raw.get("question") or ""),
            options=tuple(str(o) for o in options),
            correct=correct,
            explanation=str(raw.get("explanation") or ""),
            wrong_explanations=wrong,
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "domain": self.domain,
            "subdomain": self.subdomain,
            "question": self.question,
            "options": list(self.options),
            "correct": self.correct,
            "explanation": self.explanation,
            "wrongExplanations": {str(k): v for k, v in sorted(self.wrong_explanations.items())},
        }

    def is_correct(self, selected: Optional[int]) -> bool:
        return selected is not None and selected == self.correct

    def explanation_for(self, selected: Optional[int]) -> str:
        """Wrong-answer explanation for a chosen option when one exists, otherwise the general one."""
        if selected is not None and selected != self.correct and selected in self.wrong_explanations:
            return self.wrong_explanations[selected]
        return self.explanation


@dataclass(frozen=True)
class DomainAllocation:
    domain: str
    total: int  # questions in the bank for this domain
    count: int  # questions assigned to the session


@dataclass(frozen=True)
class DomainScore:
    correct: int = 0
    total: int = 0
    answered: int = 0


@dataclass(frozen=True)
class ScoreResult:
    correct: int
    total: int
    percentage: int


@dataclass(frozen=True)
class PracticeSummary:
    correct: int
    total: int
    answered: int
    time_spent: int
    breakdown: Dict[str, DomainScore]


@dataclass(frozen=True)
class AnswerFeedback:
    """Immediate feedback shown in practice mode after an answer is recorded."""

    question_id: int
    selected: int  # original option index
    correct: int  # original option index
    correct_display: int  # where the correct option sits on screen
    is_correct: bool
    explanation: str


@dataclass(frozen=True)
class ExamHistoryEntry:
    """A finalized exam attempt. Never mutated after creation."""

    id: str
    date: str  # ISO-8601, UTC
    score: int
    total: int
    percentage: int
    time_spent: int
    question_ids: Tuple[int, ...]
    user_answers: Dict[int, int]
    shuffled_options: Dict[int, Tuple[int, ...]]

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "date": self.date,
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "time_spent": self.time_spent,
            "question_ids": list(self.question_ids),
            "user_answers": {str(k): v for k, v in self.user_answers.items()},
            "shuffled_options": {str(k): list(v) for k, v in self.shuffled_options.items()},
        }

    @classmethod
    def from_dict(cls, raw: Dict) -> "ExamHistoryEntry":
        """
        Rebuild an entry from its stored form.

        Raises:
            ValueError: the stored record is malformed
        """
        try:
            entry = cls(
                id=str(raw["id"]),
                date=str(raw["date"]),
                score=int(raw["score"]),
                total=int(raw["total"]),
                percentage=int(raw["percentage"]),
                time_spent=int(raw.get("time_spent", 0)),
                question_ids=tuple(int(q) for q in raw["question_ids"]),
                user_answers={int(k): int(v) for k, v in (raw.get("user_answers") or {}).items()},
                shuffled_options={
                    int(k): tuple(int(i) for i in v) for k, v in (raw.get("shuffled_options") or {}).items()
                },
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Malformed history entry: {e}") from e
        if not 0 <= entry.percentage <= 100 or not 0 <= entry.score <= entry.total:
            raise ValueError(f"Malformed history entry {entry.id}: impossible score values")
        return entry
