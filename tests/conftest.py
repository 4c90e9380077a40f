"""
Pytest Configuration and Fixtures for the Questify Engine Tests
===============================================================

Purpose
-------
Centralized test fixtures for the engine test suite: a pinned clock, small
deterministic catalogs, the pure engine parts and a fully wired service over
the in-memory store.

Responsibilities
----------------
- Fixed time source (every test runs "now" = Wednesday 2024-03-06 10:00)
- Seeded randomness for quest generation
- Achievement and quest template catalogs sized for exact assertions
- Service wiring with process-local locks and a real EventBus
- Mock fixtures for collaborators in isolated unit tests

Architecture Notes
------------------
- Unit tests use the in-memory store (fast, isolated)
- Integration tests use SQLite through aiosqlite and the real DatabaseService
- The catalogs here are deliberately small: exactly three daily and two weekly
  templates, so generation always picks all of them (only order is random)
"""

from __future__ import annotations

import os
import random
from datetime import datetime
from typing import Any, Callable, Dict, List

import pytest

from questify.core.clock import FixedClock
from questify.core.event.bus import EventBus
from questify.core.locks import LocalUserLocks
from questify.domain.models.player import PlayerStats
from questify.modules.achievements.catalog import AchievementCatalog
from questify.modules.achievements.evaluator import AchievementEvaluator
from questify.modules.engine.router import EventRouter
from questify.modules.engine.service import GamificationService
from questify.modules.persistence.store import InMemoryGameStore
from questify.modules.quests.catalog import QuestTemplateCatalog
from questify.modules.quests.lifecycle import QuestLifecycle
from questify.modules.shared.settings import GamificationSettings

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"


NOW = datetime(2024, 3, 6, 10, 0)
TODAY = NOW.date()

ACHIEVEMENT_ENTRIES: List[Dict[str, Any]] = [
    {
        "id": "first_task",
        "title": "First Step",
        "requirement": {"type": "tasks_completed", "value": 1},
        "xp_reward": 10,
        "coin_reward": 5,
    },
    {
        "id": "streak_3",
        "title": "On a Roll",
        "requirement": {"type": "streak", "value": 3},
        "xp_reward": 20,
        "coin_reward": 0,
    },
    {
        "id": "level_2",
        "title": "Moving Up",
        "requirement": {"type": "level", "value": 2},
        "xp_reward": 0,
        "coin_reward": 50,
    },
    {
        "id": "comeback",
        "title": "Welcome Back",
        "requirement": {"type": "comeback", "value": 7},
        "xp_reward": 50,
        "coin_reward": 0,
        "secret": True,
    },
    {
        "id": "marathoner",
        "title": "Marathoner",
        "requirement": {"type": "quests_completed", "value": 1000},
        "xp_reward": 100,
        "coin_reward": 0,
        "rarity": "epic",
    },
    {
        "id": "mystery",
        "title": "Mystery",
        "requirement": {"type": "moon_phase", "value": 1},
        "xp_reward": 999,
        "coin_reward": 999,
    },
]

QUEST_TEMPLATES: Dict[str, Any] = {
    "daily": [
        {
            "id": "d_tasks_2",
            "title": "Warm Up",
            "objectives": [{"description": "Complete 2 tasks", "type": "complete_tasks", "target": 2}],
            "rewards": {"xp": 50, "coins": 20},
        },
        {
            "id": "d_work_1",
            "title": "Office Hero",
            "objectives": [
                {
                    "description": "Complete a work task",
                    "type": "complete_category",
                    "target": 1,
                    "category": "Work",
                }
            ],
            "rewards": {"xp": 30, "coins": 10, "gems": 1},
        },
        {
            "id": "d_xp_100",
            "title": "XP Hunter",
            "objectives": [{"description": "Earn 100 XP", "type": "earn_xp", "target": 100}],
            "rewards": {"xp": 25, "coins": 30},
        },
    ],
    "weekly": [
        {
            "id": "w_tasks_10",
            "title": "Weekly Grind",
            "objectives": [{"description": "Complete 10 tasks", "type": "complete_tasks", "target": 10}],
            "rewards": {"xp": 200, "coins": 100, "gems": 5},
        },
        {
            "id": "w_streak_3",
            "title": "Consistency",
            "objectives": [{"description": "Reach a 3-day streak", "type": "maintain_streak", "target": 3}],
            "rewards": {"xp": 150, "coins": 50},
        },
    ],
    "special": [
        {
            "id": "s_marathon",
            "title": "Marathon",
            "objectives": [{"description": "Complete 5 tasks", "type": "complete_tasks", "target": 5}],
            "rewards": {"xp": 500, "coins": 250, "gems": 10, "achievement": "marathoner"},
        },
    ],
}


# ============================================================================
# ENGINE FIXTURES
# ============================================================================


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def settings() -> GamificationSettings:
    return GamificationSettings.defaults()


@pytest.fixture
def achievement_catalog() -> AchievementCatalog:
    return AchievementCatalog.from_entries(ACHIEVEMENT_ENTRIES)


@pytest.fixture
def template_catalog() -> QuestTemplateCatalog:
    return QuestTemplateCatalog.from_mapping(QUEST_TEMPLATES)


@pytest.fixture
def evaluator(achievement_catalog, settings) -> AchievementEvaluator:
    return AchievementEvaluator(
        achievement_catalog, curve=settings.curve, categories=settings.categories
    )


@pytest.fixture
def lifecycle(template_catalog, rng, settings) -> QuestLifecycle:
    return QuestLifecycle(
        template_catalog,
        rng=rng,
        daily_count=settings.daily_quest_count,
        weekly_count=settings.weekly_quest_count,
        special_duration_days=settings.special_quest_duration_days,
    )


@pytest.fixture
def router(settings, evaluator, lifecycle) -> EventRouter:
    return EventRouter(settings, evaluator, lifecycle)


@pytest.fixture
def stats_factory(settings) -> Callable[..., PlayerStats]:
    """
    Build a player directly (no creation events), level fields derived.

    Usage:
        stats = stats_factory(total_xp=99, current_streak=6)
    """

    def factory(user_id: str = "user-1", **overrides: Any) -> PlayerStats:
        values: Dict[str, Any] = {
            "coins": settings.starting_coins,
            "gems": settings.starting_gems,
            "last_daily_reset": TODAY,
            "last_weekly_reset": TODAY,
            "created_at": NOW,
        }
        values.update(overrides)
        stats = PlayerStats(user_id=user_id, **values)
        stats.rederive_level(settings.curve)
        return stats

    return factory


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def store() -> InMemoryGameStore:
    return InMemoryGameStore()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def service(
    store, settings, achievement_catalog, template_catalog, event_bus, clock, rng
) -> GamificationService:
    return GamificationService(
        store,
        settings=settings,
        achievements=achievement_catalog,
        quest_templates=template_catalog,
        event_bus=event_bus,
        locks=LocalUserLocks(timeout=2),
        clock=clock,
        rng=rng,
    )


@pytest.fixture
def captured(event_bus) -> Callable[[str], List[Dict[str, Any]]]:
    """
    Subscribe a recording listener to one event name.

    Usage:
        unlocked = captured("achievement.unlocked")
        await service.complete_task(...)
        assert unlocked[0]["achievement_id"] == "first_task"
    """

    def capture(event_name: str) -> List[Dict[str, Any]]:
        received: List[Dict[str, Any]] = []

        async def listener(payload):
            received.append(payload)

        event_bus.subscribe(event_name, listener, identifier=f"capture:{event_name}")
        return received

    return capture


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that need to assert on event publishing
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock()
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def mock_config_manager(mocker):
    """
    Mock ConfigManager for unit tests.

    `get` answers from a plain dict so each test can set only the keys it
    cares about.
    """
    values: Dict[str, Any] = {}
    mock_config = mocker.MagicMock()
    mock_config.values = values
    mock_config.get = mocker.MagicMock(side_effect=lambda key, default=None: values.get(key, default))
    return mock_config


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def assert_domain_event_emitted(domain_model, event_name: str) -> bool:
    """
    Assert that a domain model emitted a specific event.

    Usage:
        stats.grant_xp(100, curve, source="test")
        assert assert_domain_event_emitted(stats, "player.leveled_up")
    """
    events = domain_model.get_pending_events()
    return any(event.event_name == event_name for event in events)


def get_domain_event_payload(domain_model, event_name: str) -> dict | None:
    """
    Get the payload of a specific domain event.

    Usage:
        stats.grant_xp(100, curve, source="test")
        payload = get_domain_event_payload(stats, "player.leveled_up")
        assert payload["new_level"] == 2
    """
    events = domain_model.get_pending_events()
    for event in events:
        if event.event_name == event_name:
            return event.payload
    return None
