# ==============================================================================
# Recommendation Engine
# ==============================================================================
"""
Item co-occurrence recommendations and frequent item pairs.

Two items co-occur when they appear in the same session's unique-item set.
Pair scores use cosine-style normalization, support / sqrt(freq(a) * freq(b)),
so they are symmetric: a pair scores the same from either side.
"""

import math
from collections import Counter
from dataclasses import dataclass
from itertools import combinations

from cartlens.core.models import FrequentBundle, Reco, Session

TOP_RECOS_PER_ITEM = 10
TOP_BUNDLES = 15


@dataclass(frozen=True)
class Recommendations:
    recos: dict[str, list[Reco]]
    bundles: list[FrequentBundle]
    item_freq: dict[str, int]


def cooccurrence_recos(sessions: list[Session]) -> Recommendations:
    """
    Count item pair co-occurrence across sessions.

    Args:
        sessions: Normalized sessions

    Returns:
        Recommendations with up to 10 partners per item (score descending)
        and the 15 pairs with the highest raw support
    """
    pairs: Counter[tuple[str, str]] = Counter()
    freq: Counter[str] = Counter()

    for session in sessions:
        items = sorted(session.unique_items)
        freq.update(items)
        pairs.update(combinations(items, 2))

    partners: dict[str, list[Reco]] = {}
    for (a, b), support in pairs.items():
        score = support / math.sqrt(freq.get(a, 1) * freq.get(b, 1))
        partners.setdefault(a, []).append(Reco(item=b, score=score))
        partners.setdefault(b, []).append(Reco(item=a, score=score))

    recos = {
        item: sorted(rows, key=lambda r: -r.score)[:TOP_RECOS_PER_ITEM]
        for item, rows in partners.items()
    }

    bundles = [
        FrequentBundle(items=pair, support=support)
        for pair, support in sorted(pairs.items(), key=lambda kv: -kv[1])[:TOP_BUNDLES]
    ]
    return Recommendations(recos=recos, bundles=bundles, item_freq=dict(freq))
