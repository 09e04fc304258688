from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from invitechan.util.db import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TeamCredential(Base):
    __tablename__ = "team_credentials"

    team_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    bot_token: Mapped[str] = mapped_column(Text, nullable=False)
    user_token: Mapped[str] = mapped_column(Text, nullable=False)
    installer_user_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    bot_user_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    installed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
