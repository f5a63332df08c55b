# tests/__init__.py
"""
Test suite for the agent orchestrator.

- unit: Unit tests for individual components
- integration: Store and agent loop tests against a sqlite database
- factories: Scripted model backends, sample tools and store fixtures
"""
