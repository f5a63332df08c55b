# tests/factories/__init__.py
"""
Test doubles and fixtures.

Scripted model backends stand in for the language model; sample tools
exercise the registry and the loop's artifact indexing.
"""

from tests.factories.backends import ScriptedBackend, text_response, tool_response

__all__ = ["ScriptedBackend", "text_response", "tool_response"]
