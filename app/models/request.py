from datetime import datetime
import uuid

from sqlalchemy import DateTime, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)
REQUEST_STATUSES = (STATUS_PENDING, *TERMINAL_STATUSES)

class Request(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "requests"
    # Not a foreign key: requests outlive the user type they were submitted under.
    user_type_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True, default=STATUS_PENDING)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
