"""
Questify Engine Test Suite
==========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with in-memory store and mocks
- tests/integration/   : Store and service tests against in-memory SQLite (aiosqlite)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test engine rules
- Integration tests: Exercise the real DatabaseService and SQL store
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
