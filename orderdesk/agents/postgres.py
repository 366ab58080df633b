import uuid
from contextlib import asynccontextmanager

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine

from orderdesk.config import settings
from orderdesk.models.draft import OrderDraftRecord, utcnow
from orderdesk.orders.draft import DraftRecord, OrderDraft

class PostgresAgent:
    def __init__(self, database_url: str | None = None):
        self.engine = create_async_engine(database_url or settings.DATABASE_URL)

    @asynccontextmanager
    async def get_session(self):
        async with AsyncSession(self.engine) as session:
            yield session

    async def create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def save_draft(self, draft: OrderDraft):
        payload = draft.to_record().model_dump_json()
        async with self.get_session() as db:
            db_draft = await db.get(OrderDraftRecord, uuid.UUID(draft.id))
            if db_draft is None:
                db_draft = OrderDraftRecord(id=uuid.UUID(draft.id), customer_type=draft.customer_type, payload=payload)
            else:
                db_draft.customer_type = draft.customer_type
                db_draft.payload = payload
                db_draft.updated_at = utcnow()
            db.add(db_draft)
            await db.commit()
            await db.refresh(db_draft)
            return db_draft

    async def get_draft(self, draft_id: str) -> OrderDraft | None:
        async with self.get_session() as db:
            statement = select(OrderDraftRecord).where(OrderDraftRecord.id == uuid.UUID(draft_id))
            result = (await db.exec(statement)).first()
        if result is None:
            return None
        return OrderDraft.from_record(DraftRecord.model_validate_json(result.payload))

    async def delete_draft(self, draft_id: str) -> bool:
        async with self.get_session() as db:
            db_draft = await db.get(OrderDraftRecord, uuid.UUID(draft_id))
            if db_draft is None:
                return False
            await db.delete(db_draft)
            await db.commit()
            return True

    async def dispose(self):
        await self.engine.dispose()
