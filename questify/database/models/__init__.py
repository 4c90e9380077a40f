"""
ORM records.

Importing this package registers every table on `Base.metadata`.
"""

from questify.database.models.player_stats import PlayerStatsRecord
from questify.database.models.quest import QuestRecord

__all__ = ["PlayerStatsRecord", "QuestRecord"]
