"""
Core infrastructure layer for Questify.

Subsystems
----------
- config: static environment config (`Config`) and YAML balance config (`ConfigManager`)
- logging: structured logging, LogContext propagation
- event: in-process EventBus for notification fan-out
- database: async SQLAlchemy engine/session management
- locks: per-user mutual exclusion (process-local or Redis)
- clock: injectable time source

Submodules are imported explicitly by callers; this package does not
re-export them to keep import order free of cycles.
"""
