"""One-time good/bad reactions with optimistic counts and rollback."""

import asyncio
import logging
from enum import Enum
from typing import Set

from ..api.base import EngagementAPI, TransportError
from ..db.ledger import ReactionLedger
from ..models.post import Polarity, TargetType
from .store import PostStore

logger = logging.getLogger(__name__)


class ReactionState(str, Enum):
    """Where a target stands for this device."""

    ELIGIBLE = "eligible"
    PENDING = "pending"
    COMMITTED = "committed"


class ReactionCoordinator:
    """Submits reactions, at most one per target per device.

    State per (target type, target id):
    - ELIGIBLE: no ledger entry and nothing in flight
    - PENDING: a submission is in flight; further attempts are ignored
    - COMMITTED: the ledger holds an entry; further attempts are ignored

    The guard check and insert in ``react`` run without an ``await`` in
    between, which is what serialises attempts on one event loop.
    """

    def __init__(self, api: EngagementAPI, ledger: ReactionLedger, store: PostStore):
        """Initialize the coordinator.

        Args:
            api: Board API used to submit reactions
            ledger: Local reaction ledger (written only by this coordinator)
            store: Store receiving optimistic patches and rollback re-fetches
        """
        self.api = api
        self.ledger = ledger
        self.store = store
        self._in_flight: Set[str] = set()

    @staticmethod
    def _key(target_type: TargetType, target_id: int) -> str:
        return f"{TargetType(target_type).value}_{target_id}"

    def state(self, target_type: TargetType, target_id: int) -> ReactionState:
        if self._key(target_type, target_id) in self._in_flight:
            return ReactionState.PENDING
        if self.ledger.get(target_type, target_id) is not None:
            return ReactionState.COMMITTED
        return ReactionState.ELIGIBLE

    async def react(
        self, target_id: int, target_type: TargetType, polarity: Polarity
    ) -> bool:
        """React to a post or reply.

        Args:
            target_id: Post or reply id
            target_type: Whether target_id names a post or a reply
            polarity: good or bad

        Returns:
            True if a reaction was dispatched, False if the attempt was ignored
        """
        target_type = TargetType(target_type)
        polarity = Polarity(polarity)
        key = self._key(target_type, target_id)

        if key in self._in_flight or self.ledger.get(target_type, target_id) is not None:
            logger.debug(f"Ignoring repeat reaction on {key}")
            return False

        self._in_flight.add(key)
        try:
            self.ledger.set(target_type, target_id, polarity)
            patched = self.store.patch_reaction(target_type, target_id, polarity)

            try:
                await asyncio.to_thread(
                    self.api.create_reaction, target_id, target_type, polarity
                )
            except TransportError as e:
                logger.error(f"Reaction {polarity.value} on {key} failed, rolling back: {e}")
                self.ledger.clear(target_type, target_id)
                # Counts are resynchronised from the server, dropping the optimistic increment
                refreshed = await self.store.refresh()
                if not refreshed and patched:
                    logger.warning(f"⚠️  Could not resync after failed reaction on {key}, undoing locally")
                    self.store.patch_reaction(target_type, target_id, polarity, undo=True)
                return True

            logger.info(f"Reacted {polarity.value} on {key}")
            return True
        finally:
            self._in_flight.discard(key)

    def forget(self, target_type: TargetType, target_id: int) -> None:
        """Drop the ledger entry for a target invalidated by a privileged action."""
        self.ledger.clear(target_type, target_id)
