import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin


class UserTypeField(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "user_type_fields"
    __table_args__ = (
        UniqueConstraint("user_type_id", "sort_order", name="uq_user_type_fields_type_order"),
        UniqueConstraint("user_type_id", "field_id", name="uq_user_type_fields_type_field"),
    )

    user_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    field_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("field_definitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)

    field = relationship("FieldDefinition", lazy="joined")
