"""
Configuration management subsystem for Questify.

Static vs Balance Configuration
-------------------------------
**Static (Config):**
- Loaded from environment variables (.env supported) at import
- Includes: database URL, Redis URL, logging switches, lock timeouts
- Changes require a restart

**Balance (ConfigManager, `questify.core.config.manager`):**
- Loaded from YAML files under `config/`
- Includes: level curve, reward tables, streak bonuses, quest and
  achievement catalogs
- Supports in-memory overrides for tests and tuning
"""

from .config import Config

__all__ = ["Config"]
