"""
Domain-proportional allocation (largest-remainder method).

For a requested sample size, decide how many questions each domain contributes so the
sample mirrors the bank's domain proportions. Allocations always sum to
min(requested, bank size) and no domain exceeds its bank total.
"""
import logging
import math
from typing import List, Mapping

from aceprep.models import DomainAllocation

logger = logging.getLogger(__name__)


def clamp_count(value, upper: int) -> int:
    """Coerce a requested size into [0, upper]. Non-numeric, NaN and infinite input count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            n = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(0, min(n, upper))


def allocate(domain_counts: Mapping[str, int], requested) -> List[DomainAllocation]:
    """
    Split ``requested`` questions across domains in proportion to their bank size.

    Args:
        domain_counts: domain -> number of questions in the bank (bank order is kept)
        requested: desired sample size; clamped to [0, bank size]

    Returns:
        One DomainAllocation per domain, or [] when nothing is requested
    """
    bank_size = sum(domain_counts.values())
    target = clamp_count(requested, bank_size)
    if target <= 0:
        return []

    # [domain, size, count, remainder]
    rows = []
    for domain, size in domain_counts.items():
        raw = size * target / bank_size
        base = min(math.floor(raw), size)
        rows.append([domain, size, base, raw - base])

    assigned = sum(r[2] for r in rows)
    guard = 4 * len(rows)

    if assigned < target:
        order = sorted(rows, key=lambda r: r[3], reverse=True)
        i = 0
        while assigned < target and i < guard:
            row = order[i % len(order)]
            if row[2] < row[1]:
                row[2] += 1
                assigned += 1
            i += 1
    elif assigned > target:
        order = sorted(rows, key=lambda r: r[3])
        i = 0
        while assigned > target and i < guard:
            row = order[i % len(order)]
            if row[2] > 0:
                row[2] -= 1
                assigned -= 1
            i += 1

    if assigned != target:
        logger.warning(f"Allocation stopped at {assigned}/{target} after {guard} iterations")

    return [DomainAllocation(domain=d, total=size, count=count) for d, size, count, _ in rows]
