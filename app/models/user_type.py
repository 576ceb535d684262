from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin

STATE_ACTIVE = "ACTIVE"
STATE_INACTIVE = "INACTIVE"
STATE_DELETED = "DELETED"
USER_TYPE_STATES = (STATE_ACTIVE, STATE_INACTIVE, STATE_DELETED)

class UserType(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "user_types"
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    # Lower-cased name; the unique index makes names case-insensitively unique.
    name_key: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default=STATE_ACTIVE, index=True)

    @property
    def is_active(self) -> bool:
        return self.state == STATE_ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.state == STATE_DELETED
