"""
Quest record: one row per generated quest instance.

Objectives and rewards are stored as JSON in the shape of
`QuestObjective.to_dict()` / `QuestRewards.to_dict()`.

Indexes:
- quest_id (primary key)
- user_id + end_date (active quest lookups and cleanup)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from questify.core.database.base import Base, TimestampMixin


class QuestRecord(TimestampMixin, Base):
    __tablename__ = "quests"

    quest_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    template_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    objectives: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)
    rewards: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (Index("ix_quests_user_end", "user_id", "end_date"),)

    def __repr__(self) -> str:
        return (
            f"<QuestRecord(quest_id={self.quest_id}, user_id={self.user_id}, "
            f"type={self.type}, completed={self.completed}, claimed={self.claimed})>"
        )
