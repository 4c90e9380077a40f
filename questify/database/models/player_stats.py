"""
PlayerStats record: one row per user with every engine counter.

Features:
- Scalar counters as integer columns (leaderboard-friendly)
- Per-category stats and unlocked achievement ids as JSON
- `version` for optimistic concurrency (checked by the store on update)

Indexes:
- user_id (primary key)
- level, total_xp (leaderboards)
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from questify.core.database.base import Base, VersionMixin


class PlayerStatsRecord(VersionMixin, Base):
    __tablename__ = "player_stats"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Leveling
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_to_next_level: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    # Streak
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_completed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    streak_recovery_pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    streak_recoveries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Wallet
    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gems: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Counters
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quests_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daily_quests_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daily_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daily_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hard_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    epic_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    legendary_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    high_priority_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    early_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    late_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekend_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    perfect_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    perfect_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_perfect_day: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    subtasks_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category_stats: Mapped[Dict[str, Dict[str, int]]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    # Achievements
    achievement_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    achievements_unlocked: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # Calendar bookkeeping
    last_login_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_absence_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_daily_reset: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_weekly_reset: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_player_stats_level", "level"),
        Index("ix_player_stats_total_xp", "total_xp"),
    )

    def __repr__(self) -> str:
        return f"<PlayerStatsRecord(user_id={self.user_id}, level={self.level}, version={self.version})>"
