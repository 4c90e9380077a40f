"""
ConfigManager: YAML-backed balance configuration.

Every `*.yaml`/`*.yml` file under `Config.CONFIG_DIR` is deep-merged, in
sorted path order, into one tree read with dot paths such as
`"leveling.base_xp"`. Top-level keys are namespaces (`leveling`, `rewards`,
`streaks`, `quests`, `quest_templates`, `achievements`, ...); a namespace
may be split across files.

Reads before `initialize()` load the tree lazily. `set_override` wins over
YAML for the lifetime of the process (tests, live tuning).
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from questify.core.config.config import Config
from questify.core.logging.logger import get_logger

logger = get_logger(__name__)


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class ConfigManager:
    """Process-wide singleton held in class state, like `Config`."""

    _tree: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """(Re)load the YAML tree. A file that fails to parse is skipped."""
        directory = Path(config_dir or Config.CONFIG_DIR)
        tree: Dict[str, Any] = {}
        loaded = 0

        if not directory.exists():
            logger.warning(
                "Config directory not found; using built-in defaults",
                extra={"config_dir": str(directory)},
            )
        for path in sorted([*directory.rglob("*.yaml"), *directory.rglob("*.yml")]):
            try:
                with path.open(encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Skipping unreadable YAML config",
                    extra={"file": str(path), "error": str(exc)},
                )
                continue
            if isinstance(data, dict):
                _deep_merge(tree, data)
                loaded += 1
            elif data is not None:
                logger.warning(
                    "Ignoring YAML config whose root is not a mapping",
                    extra={"file": str(path), "root_type": type(data).__name__},
                )

        cls._tree = tree
        cls._initialized = True
        logger.info(
            "ConfigManager initialized",
            extra={"config_dir": str(directory), "files_loaded": loaded, "namespaces": sorted(tree)},
        )

    @classmethod
    def reset(cls) -> None:
        cls._tree = {}
        cls._overrides = {}
        cls._initialized = False

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Value at a dot path; a missing key or a `None` leaf yields `default`.

        >>> ConfigManager.get("leveling.base_xp", 100)
        100
        """
        if not cls._initialized:
            cls.initialize()
        if key in cls._overrides:
            return copy.deepcopy(cls._overrides[key])

        node: Any = cls._tree
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else copy.deepcopy(node)

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        cls._overrides[key] = copy.deepcopy(value)
        logger.info("Configuration override applied", extra={"config_key": key})
