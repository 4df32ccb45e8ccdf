"""In-memory registry of selection sessions."""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Optional, Tuple

from core.types import ProductFetcher
from core.variant_engine import VariantSelectionEngine


logger = logging.getLogger(__name__)


class SelectionSessionRegistry:
    """
    Engines keyed by session id, least recently used evicted first.

    Each session owns one VariantSelectionEngine; all engines share the
    fetcher handed to the registry.
    """

    def __init__(self, fetcher: ProductFetcher, max_sessions: int = 1000):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._fetcher = fetcher
        self._max_sessions = max_sessions
        self._sessions: "OrderedDict[str, VariantSelectionEngine]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(
        self, slug: str, variant_id: Optional[str] = None
    ) -> Tuple[str, VariantSelectionEngine]:
        """Load a new engine; nothing is registered when the load fails."""
        engine = VariantSelectionEngine(self._fetcher, slug)
        await engine.load(variant_id=variant_id)

        session_id = uuid.uuid4().hex
        self._sessions[session_id] = engine
        while len(self._sessions) > self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted selection session %s", evicted)
        return session_id, engine

    def get(self, session_id: str) -> Optional[VariantSelectionEngine]:
        engine = self._sessions.get(session_id)
        if engine is not None:
            self._sessions.move_to_end(session_id)
        return engine

    def remove(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
