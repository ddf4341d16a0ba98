"""
Questboard Test Suite
=====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (in-memory store, no external dependencies)
- tests/integration/   : Integration tests with testcontainers (real PostgreSQL)
- tests/fixtures/      : Test data factories

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test business logic
- Integration tests: Slower, test real infrastructure interactions
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
