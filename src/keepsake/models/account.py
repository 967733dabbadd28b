"""Account model for web and API login."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from keepsake.models.base import Base


class Account(Base):
    """Account model - username plus a bcrypt password hash (never plaintext)."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(250), unique=True, index=True)
    password: Mapped[str] = mapped_column(
        String(255),
        comment="bcrypt hash including salt",
    )
