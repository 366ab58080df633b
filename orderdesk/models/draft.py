import uuid
from datetime import datetime, timezone
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class OrderDraftBase(SQLModel):
    customer_type: str = Field(default="B2C")
    payload: str
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

class OrderDraftRecord(OrderDraftBase, table=True):
    __tablename__ = "order_drafts"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
