"""
Question bank: the read-only, ordered collection of questions every session draws from.
Also carries the domain coverage report used by bank_report.py.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from aceprep import config
from aceprep.models import Question

logger = logging.getLogger(__name__)

# Official Associate Cloud Engineer exam guide: domain -> share of the exam (%)
OFFICIAL_DOMAIN_WEIGHTS = {
    "Setting up a cloud solution environment": 23,
    "Planning and implementing a cloud solution": 30,
    "Ensuring successful operation of a cloud solution": 28,
    "Configuring access and security": 19,
}
TARGET_BANK_SIZE = 500


class QuestionBank:
    """Immutable ordered collection of questions, queryable by id and by domain."""

    def __init__(self, questions: Iterable[Question]):
        self._questions: List[Question] = list(questions)
        self._by_id: Dict[int, Question] = {}
        self._by_domain: Dict[str, List[Question]] = {}
        for q in self._questions:
            if q.id in self._by_id:
                raise ValueError(f"Duplicate question id {q.id}")
            self._by_id[q.id] = q
            self._by_domain.setdefault(q.domain, []).append(q)

    @classmethod
    def from_records(cls, records: Iterable[Dict]) -> "QuestionBank":
        return cls(Question.from_dict(r) for r in records)

    @classmethod
    def from_file(cls, path: Path | str) -> "QuestionBank":
        """
        Load a bank from JSON (a list, or an object with a "questions" list) or JSONL.

        Raises:
            FileNotFoundError: path does not exist
            ValueError: the file holds an invalid record
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Question bank not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            if path.suffix == ".jsonl":
                records = [json.loads(line) for line in f if line.strip()]
            else:
                data = json.load(f)
                records = data.get("questions", []) if isinstance(data, dict) else data
        bank = cls.from_records(records)
        logger.info(f"Loaded {len(bank)} questions in {len(bank.domains())} domains from {path}")
        return bank

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __contains__(self, question_id) -> bool:
        return question_id in self._by_id

    def get(self, question_id: int) -> Question:
        return self._by_id[question_id]

    def ids(self) -> List[int]:
        return [q.id for q in self._questions]

    def domains(self) -> List[str]:
        """Domains in order of first appearance."""
        return list(self._by_domain)

    def by_domain(self, domain: str) -> List[Question]:
        return list(self._by_domain.get(domain, []))

    def domain_counts(self) -> Dict[str, int]:
        return {d: len(qs) for d, qs in self._by_domain.items()}

    def subset(self, domains: Iterable[str]) -> "QuestionBank":
        """A bank restricted to the given domains; unknown domains are ignored."""
        wanted = set(domains)
        return QuestionBank(q for q in self._questions if q.domain in wanted)


def load_default_bank() -> QuestionBank:
    return QuestionBank.from_file(config.BANK_PATH)


# ============= Coverage =============

@dataclass(frozen=True)
class DomainCoverage:
    domain: str
    current: int
    current_pct: float
    target_pct: int
    target_count: int

    @property
    def gap(self) -> int:
        return self.target_count - self.current


def coverage_report(
    bank: QuestionBank,
    weights: Optional[Dict[str, int]] = None,
    target_total: int = TARGET_BANK_SIZE,
) -> List[DomainCoverage]:
    """
    Compare the bank's domain distribution against the exam-guide weights.

    Domains present in the bank but missing from the weights are listed last with a zero target.
    """
    weights = OFFICIAL_DOMAIN_WEIGHTS if weights is None else weights
    counts = bank.domain_counts()
    total = len(bank)
    rows = []
    for domain in list(weights) + [d for d in counts if d not in weights]:
        current = counts.get(domain, 0)
        pct = weights.get(domain, 0)
        rows.append(DomainCoverage(
            domain=domain,
            current=current,
            current_pct=(current / total * 100) if total else 0.0,
            target_pct=pct,
            target_count=round(target_total * pct / 100),
        ))
    return rows


def subdomain_counts(bank: QuestionBank) -> Dict[str, int]:
    """Subdomain -> count, most covered first."""
    counts: Dict[str, int] = {}
    for q in bank:
        key = q.subdomain or "(blank)"
        counts[key] = counts.get(key, 0) + 1
    return dict(sorted(counts.items(), key=lambda x: (-x[1], x[0])))
