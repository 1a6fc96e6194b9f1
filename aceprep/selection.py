"""
Session question selection.
Exam: flat random draw of EXAM_SIZE ids. Practice: domain-proportional draw with backfill.
Every selected question also gets its own answer-option permutation.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from aceprep import config
from aceprep.allocation import allocate, clamp_count
from aceprep.bank import QuestionBank
from aceprep.models import DomainAllocation
from aceprep.randomizer import Randomizer

logger = logging.getLogger(__name__)

Allocator = Callable[[Mapping[str, int], int], List[DomainAllocation]]


@dataclass(frozen=True)
class SessionSelection:
    """Ordered question ids for one session plus each question's option permutation."""

    question_ids: Tuple[int, ...]
    permutations: Dict[int, Tuple[int, ...]]

    def __len__(self) -> int:
        return len(self.question_ids)


class SessionSelector:
    """Draws question subsets from a bank for exam and practice sessions."""

    def __init__(
        self,
        bank: QuestionBank,
        randomizer: Optional[Randomizer] = None,
        allocator: Allocator = allocate,
    ):
        self.bank = bank
        self.randomizer = randomizer or Randomizer()
        self.allocator = allocator

    def select_exam(self, size: int = config.EXAM_SIZE) -> SessionSelection:
        """Uniform shuffle of all bank ids truncated to ``size`` (no domain balancing)."""
        target = clamp_count(size, len(self.bank))
        ids = self.randomizer.shuffle(self.bank.ids())[:target]
        logger.info(f"Selected {len(ids)} exam questions from {len(self.bank)}")
        return self._with_permutations(ids)

    def select_practice(self, size, domains: Optional[Iterable[str]] = None) -> SessionSelection:
        """
        Domain-proportional practice set.

        Args:
            size: requested number of questions, clamped to the pool size
            domains: optional domain filter; None means the whole bank

        Returns:
            SessionSelection whose order is shuffled across domains
        """
        pool = self.bank if domains is None else self.bank.subset(domains)
        target = clamp_count(size, len(pool))

        chosen: List[int] = []
        for alloc in self.allocator(pool.domain_counts(), target):
            domain_ids = [q.id for q in pool.by_domain(alloc.domain)]
            chosen.extend(self.randomizer.shuffle(domain_ids)[:alloc.count])

        # a domain listed twice by the allocator must not yield duplicate ids
        chosen = list(dict.fromkeys(chosen))[:target]

        if len(chosen) < target:
            taken = set(chosen)
            remaining = [qid for qid in pool.ids() if qid not in taken]
            extra = self.randomizer.shuffle(remaining)[:target - len(chosen)]
            logger.info(f"Allocation under-filled practice set by {target - len(chosen)}; backfilled {len(extra)}")
            chosen.extend(extra)

        ordered = self.randomizer.shuffle(chosen)
        logger.info(f"Selected {len(ordered)} practice questions across {len(pool.domains())} domains")
        return self._with_permutations(ordered)

    def _with_permutations(self, ids: Sequence[int]) -> SessionSelection:
        perms = {
            qid: tuple(self.randomizer.permutation(len(self.bank.get(qid).options)))
            for qid in ids
        }
        return SessionSelection(question_ids=tuple(ids), permutations=perms)
