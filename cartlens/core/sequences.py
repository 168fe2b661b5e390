# ==============================================================================
# Event Sequence Model
# ==============================================================================
"""
Per-session event streams and the global transition graph.

Each session's views, cart events and wishlist events are merged into one
chronological stream. Adjacent pairs in every stream are counted into a 5x5
transition matrix over the fixed state set, row-normalized into
probabilities, and exposed as a flow graph (Sankey) of non-zero cells.
"""

from dataclasses import dataclass

from cartlens.core.models import (
    TRANSITION_STATES,
    EventType,
    ItemMeta,
    Sankey,
    SankeyLink,
    Session,
    SessionEvent,
    Transition,
    TransitionEvent,
    Transitions,
)

STATE_INDEX: dict[str, int] = {state: idx for idx, state in enumerate(TRANSITION_STATES)}


def _price(item_meta: ItemMeta, item_id: str) -> float:
    info = item_meta.get(item_id)
    return info.price if info else 0.0


def _action_events(
    events: tuple[SessionEvent, ...],
    add_type: EventType,
    remove_type: EventType,
    item_meta: ItemMeta,
) -> list[TransitionEvent]:
    out: list[TransitionEvent] = []
    for event in events:
        price = _price(item_meta, event.item_id)
        if event.add:
            out.append(TransitionEvent(ts=event.ts, type=add_type, item_id=event.item_id, price=price))
        if event.remove:
            out.append(
                TransitionEvent(ts=event.ts, type=remove_type, item_id=event.item_id, price=price)
            )
    return out


def build_event_stream(session: Session, item_meta: ItemMeta) -> list[TransitionEvent]:
    """
    Merge a session's events into one stream sorted by timestamp.

    The sort is stable: on equal timestamps views come first, then cart
    events, then wishlist events, each in their original order.
    """
    events = [
        TransitionEvent(
            ts=view.ts,
            type=EventType.VIEW,
            item_id=view.item_id,
            price=_price(item_meta, view.item_id),
        )
        for view in session.views
    ]
    events += _action_events(session.carts, EventType.CART_ADD, EventType.CART_REMOVE, item_meta)
    events += _action_events(
        session.wish, EventType.WISHLIST_ADD, EventType.WISHLIST_REMOVE, item_meta
    )
    events.sort(key=lambda e: e.ts)
    return events


def empty_matrix(size: int = len(TRANSITION_STATES)) -> list[list[int]]:
    """A size x size matrix of zeros."""
    return [[0] * size for _ in range(size)]


def row_normalize(counts: list[list[int]]) -> list[list[float]]:
    """Row-normalize counts into probabilities; zero rows stay all-zero."""
    probs: list[list[float]] = []
    for row in counts:
        total = sum(row)
        probs.append([value / total for value in row] if total else [0.0] * len(row))
    return probs


def flow_links(counts: list[list[int]], include_self_loops: bool = True) -> list[SankeyLink]:
    """Flow-graph links for every positive matrix cell, in row-major order."""
    links: list[SankeyLink] = []
    for i, row in enumerate(counts):
        for j, value in enumerate(row):
            if value > 0 and (include_self_loops or i != j):
                links.append(SankeyLink(source=i, target=j, value=value))
    return links


@dataclass(frozen=True)
class TransitionModel:
    """
    Transition matrix, flow graph and the raw transition pairs.

    ``all_transitions`` keeps every adjacent (from, to) pair so that price
    band and price range builders can see the price attached to a transition.
    """

    transitions: Transitions
    sankey: Sankey
    all_transitions: list[Transition]


def transition_model(sessions: list[Session], item_meta: ItemMeta) -> TransitionModel:
    """
    Count adjacent-event transitions across all sessions.

    Args:
        sessions: Normalized sessions
        item_meta: Item metadata (for per-event prices)

    Returns:
        TransitionModel with counts, probabilities, flow graph and pairs
    """
    counts = empty_matrix()
    pairs: list[Transition] = []

    for session in sessions:
        stream = build_event_stream(session, item_meta)
        for source, target in zip(stream, stream[1:]):
            counts[STATE_INDEX[source.type.value]][STATE_INDEX[target.type.value]] += 1
            pairs.append((source, target))

    return TransitionModel(
        transitions=Transitions(
            states=list(TRANSITION_STATES),
            counts=counts,
            probs=row_normalize(counts),
        ),
        sankey=Sankey(nodes=list(TRANSITION_STATES), links=flow_links(counts)),
        all_transitions=pairs,
    )
