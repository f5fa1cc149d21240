"""Account deletion audit records."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - required at runtime for SQLAlchemy type resolution

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pkgallery.db.models.base import Base, IntPrimaryKey


class AccountDeletion(Base):
    """One row per deleted account.

    Written once by the account deletion workflow and never updated. Keys are
    stored without foreign keys so the record survives later hard deletes.
    """

    __tablename__ = "account_deletions"

    deletion_key: Mapped[IntPrimaryKey]

    deleted_account_key: Mapped[int] = mapped_column(nullable=False)
    deleted_username: Mapped[str] = mapped_column(String(64), nullable=False)
    deleted_by_key: Mapped[int] = mapped_column(nullable=False)
    deleted_by_username: Mapped[str] = mapped_column(String(64), nullable=False)

    # Free-text justification entered by the acting administrator
    signature: Mapped[str] = mapped_column(String(256), nullable=False)
    deleted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("ix_account_deletions_deleted_account_key", "deleted_account_key"),)
