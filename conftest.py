"""Shared fixtures: in-memory banks, a controllable clock and seeded engines."""
import random
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from aceprep.bank import QuestionBank
from aceprep.models import Question
from aceprep.randomizer import Randomizer
from aceprep.selection import SessionSelector
from aceprep.session import SessionState
from aceprep.storage import MemoryStore

DOMAIN_SIZES = {
    "Setting up a cloud solution environment": 23,
    "Planning and implementing a cloud solution": 30,
    "Ensuring successful operation of a cloud solution": 28,
    "Configuring access and security": 19,
}


def make_question(qid: int, domain: str, n_options: int = 4) -> Question:
    return Question(
        id=qid,
        domain=domain,
        subdomain=f"{domain} / topic {qid % 3}",
        question=f"Question {qid} about {domain}?",
        options=tuple(f"Option {qid}-{i}" for i in range(n_options)),
        correct=qid % n_options,
        explanation=f"Because option {qid % n_options} is right.",
        wrong_explanations={(qid + 1) % n_options: "That one is a common trap."},
    )


def build_bank(sizes: dict, start_id: int = 1) -> QuestionBank:
    questions = []
    qid = start_id
    for domain, size in sizes.items():
        for _ in range(size):
            questions.append(make_question(qid, domain))
            qid += 1
    return QuestionBank(questions)


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def bank_factory():
    return build_bank


@pytest.fixture
def bank():
    return build_bank(DOMAIN_SIZES)


@pytest.fixture
def randomizer():
    return Randomizer(random.Random(1234))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_engine(bank, clock, store):
    def _make(target_bank=None, target_store=None, **kwargs):
        b = target_bank if target_bank is not None else bank
        return SessionState(
            b,
            target_store if target_store is not None else store,
            selector=SessionSelector(b, Randomizer(random.Random(7))),
            clock=clock,
            **kwargs,
        )
    return _make


def correct_display(engine: SessionState, qid: int) -> int:
    """Display position of the correct option for qid in the running session."""
    perm = engine.session.permutations[qid]
    return perm.index(engine.bank.get(qid).correct)


def wrong_display(engine: SessionState, qid: int) -> int:
    perm = engine.session.permutations[qid]
    return next(p for p, original in enumerate(perm) if original != engine.bank.get(qid).correct)
