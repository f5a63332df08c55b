# tests/integration/__init__.py
"""
Integration tests.

Each test gets a fresh sqlite file database created through
DatabaseManager, so the stores run their real SQL including upserts.
"""
