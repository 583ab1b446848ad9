"""
Pytest configuration and shared fixtures for the debate backend tests.

This module provides:
- An in-memory store and debate service
- A scripted stand-in for the Claude client
- An app factory wired to both, for TestClient-based API tests
"""

import os

# Module-level app construction in backend.py reads these on import.
os.environ.setdefault("DEBATE_STORE", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from debate_backend.domain import Debate
from debate_backend.middleware import SecuritySettings
from debate_backend.services.debate_service import DebateService
from debate_backend.services.debate_store import InMemoryDebateStore
from debate_backend.services.errors import UpstreamError, UpstreamErrorKind
from debate_backend.services.prompt_manager import PromptManager


# ============================================================================
# Mock AI client
# ============================================================================

class FakeSuggestionClient:
    """
    Stand-in for AnthropicSuggestionClient.

    Returns queued responses in order; a queued ``UpstreamErrorKind`` is
    raised as an ``UpstreamError`` instead.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def queue(self, *responses):
        self.responses.extend(responses)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            return "null"
        response = self.responses.pop(0)
        if isinstance(response, UpstreamErrorKind):
            raise UpstreamError(response, "scripted failure")
        return response


@pytest.fixture
def fake_client():
    return FakeSuggestionClient()


# ============================================================================
# Store / service
# ============================================================================

@pytest.fixture
def store():
    return InMemoryDebateStore()


@pytest.fixture
def service(store):
    return DebateService(store)


@pytest.fixture
def prompt_manager():
    return PromptManager()


@pytest.fixture
def debate():
    return Debate()


# ============================================================================
# API client
# ============================================================================

@pytest.fixture
def open_security():
    """Generous limits so API tests never trip the middleware."""
    return SecuritySettings(
        auth_token=None,
        rate_limit_expensive=1000,
        rate_limit_mutate=1000,
        rate_limit_read=1000,
    )


@pytest.fixture
def app(store, fake_client, prompt_manager, open_security):
    from debate_backend.backend import create_app

    return create_app(
        store=store,
        ai_client=fake_client,
        prompt_manager=prompt_manager,
        security_settings=open_security,
    )


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client
