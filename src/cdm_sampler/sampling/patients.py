from __future__ import annotations

import logging
import random
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def sample_person_ids(
    person_ids: Iterable[str],
    sample_size: int,
    *,
    rng: Optional[random.Random] = None,
) -> frozenset[str]:
    """
    Pick up to `sample_size` person ids, uniformly at random.

    Every occurrence in `person_ids` is a candidate (duplicates are not collapsed
    first), empty ids are skipped. When there are no more candidates than
    `sample_size` all of them are kept. Otherwise a Fisher-Yates shuffle runs over
    the whole pool and the first `sample_size` entries are kept.

    `rng` is only for tests; runs are not meant to be reproducible.
    """
    if sample_size <= 0:
        raise ValueError(f"sample_size must be positive, got {sample_size}")

    pool = [pid for pid in person_ids if pid]
    if len(pool) <= sample_size:
        return frozenset(pool)

    r = rng or random.Random()
    for i in range(len(pool) - 1, 0, -1):
        j = r.randint(0, i)     # inclusive of i
        pool[i], pool[j] = pool[j], pool[i]

    sampled = frozenset(pool[:sample_size])
    logger.info("sampled %d of %d candidate person ids", len(sampled), len(pool))
    return sampled
