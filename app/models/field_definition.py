from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin

FIELD_KINDS = ("text", "email", "phone", "number", "date", "dropdown", "multiline-text")

class FieldDefinition(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "field_definitions"
    name: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    kind: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    options: Mapped[list | None] = mapped_column(JSON, nullable=True)
