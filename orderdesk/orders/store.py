import logging
import time
import uuid

from orderdesk.config import settings
from orderdesk.orders.draft import OrderDraft
from orderdesk.orders.search import DebouncedSearch

logger = logging.getLogger("orderdesk.orders")


class DraftNotFound(Exception):
    pass


class DraftStore:
    """Open drafts for this process, optionally mirrored to the database.

    Drafts untouched for longer than ``max_idle`` seconds are dropped from memory on
    the next access. With persistence enabled they can still be loaded back from the
    database; without it they are gone.
    """

    def __init__(self, postgres=None, max_idle: float | None = None, clock=time.monotonic):
        self.postgres = postgres
        self.max_idle = settings.DRAFT_IDLE_MINUTES * 60 if max_idle is None else max_idle
        self.clock = clock
        self.drafts: dict[str, OrderDraft] = {}
        self.searches: dict[str, DebouncedSearch] = {}
        self.last_used: dict[str, float] = {}

    def _touch(self, draft_id: str):
        self.last_used[draft_id] = self.clock()

    def _forget(self, draft_id: str):
        self.drafts.pop(draft_id, None)
        self.searches.pop(draft_id, None)
        self.last_used.pop(draft_id, None)

    def evict_idle(self) -> list[str]:
        cutoff = self.clock() - self.max_idle
        idle = [draft_id for draft_id, used in self.last_used.items() if used < cutoff]
        for draft_id in idle:
            self._forget(draft_id)
        if idle:
            logger.info(f"Evicted {len(idle)} idle drafts")
        return idle

    async def create(self, seller_state: str, customer_type: str = "B2C") -> OrderDraft:
        self.evict_idle()
        draft = OrderDraft(seller_state=seller_state)
        draft.set_customer_type(customer_type)
        self.drafts[draft.id] = draft
        self._touch(draft.id)
        await self.save(draft)
        logger.info(f"Opened draft {draft.id}")
        return draft

    async def get(self, draft_id: str) -> OrderDraft:
        try:
            uuid.UUID(draft_id)
        except ValueError:
            raise DraftNotFound(draft_id)

        self.evict_idle()
        draft = self.drafts.get(draft_id)
        if draft is None and self.postgres is not None:
            draft = await self.postgres.get_draft(draft_id)
            if draft is not None:
                self.drafts[draft_id] = draft
        if draft is None:
            raise DraftNotFound(draft_id)
        self._touch(draft_id)
        return draft

    async def save(self, draft: OrderDraft):
        if self.postgres is not None:
            await self.postgres.save_draft(draft)

    async def delete(self, draft_id: str):
        await self.get(draft_id)
        self._forget(draft_id)
        if self.postgres is not None:
            await self.postgres.delete_draft(draft_id)
        logger.info(f"Discarded draft {draft_id}")

    def search_for(self, draft_id: str, fetch) -> DebouncedSearch:
        search = self.searches.get(draft_id)
        if search is None:
            search = self.searches[draft_id] = DebouncedSearch(fetch)
        return search
