"""CSV export of a session: one row per question with the recorded answer and flag."""
from typing import Iterable, Mapping

from aceprep.models import Question

HEADER = ("id", "question", "selected", "correct", "flagged")


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def session_to_csv(questions: Iterable[Question], answers: Mapping[int, int], flags: Mapping[int, bool]) -> str:
    """
    Question text is always quoted (inner quotes doubled); ``selected`` is blank when
    unanswered and holds the original option index otherwise.
    """
    lines = [",".join(HEADER)]
    for q in questions:
        selected = answers.get(q.id)
        lines.append(",".join([
            str(q.id),
            _quote(q.question),
            "" if selected is None else str(selected),
            str(q.correct),
            "1" if flags.get(q.id) else "0",
        ]))
    return "\n".join(lines)
