"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (customer, agent, admin, outsider)
- A conversation between the customer and the agent
- API client helpers for authenticated requests
- Isolated registry/coordinator/relay instances on a recording channel
  layer, and EventRecorders standing in for WebSocket connections

Usage:
    def test_example(conversation, customer_client):
        response = customer_client.get(f'/api/v1/chat/conversations/{conversation.id}/messages/')
        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.django_db(transaction=True)
    async def test_live(relay, customer, recorder):
        session = (await relay.connect(customer, recorder.channel_name)).data
"""

import pytest
from channels.db import database_sync_to_async
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.models import UserRole
from authentication.tests.factories import UserFactory
from chat.delivery import DeliveryCoordinator
from chat.registry import SessionRegistry
from chat.relay import RelayEngine
from chat.services import ConversationService
from chat.tests.factories import ConversationFactory
from chat.tests.recorders import EventRecorder, RecordingChannelLayer


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def customer(db):
    """A customer; participant of the conversation fixture."""
    return UserFactory(name="Ada", email="ada@example.com", role=UserRole.CUSTOMER)


@pytest.fixture
def agent(db):
    """An agent; participant of the conversation fixture."""
    return UserFactory(name="Bob", email="bob@example.com", role=UserRole.AGENT)


@pytest.fixture
def admin_user(db):
    """A user with the admin role (not a participant)."""
    return UserFactory(name="Root", role=UserRole.ADMIN)


@pytest.fixture
def outsider(db):
    """A customer who is not in any conversation fixture."""
    return UserFactory(name="Eve", email="eve@example.com")


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def conversation(customer, agent):
    """Conversation between customer and agent."""
    return ConversationFactory(participants=[customer, agent], topic="Order #12")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def client_for(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(client_for, agent):
            response = client_for(agent).get('/api/v1/chat/conversations/')
    """

    def _make_client(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")
        return client

    return _make_client


@pytest.fixture
def customer_client(client_for, customer):
    return client_for(customer)


@pytest.fixture
def agent_client(client_for, agent):
    return client_for(agent)


# =============================================================================
# Live Delivery Fixtures
# =============================================================================


@pytest.fixture
def channel_layer():
    """Channel layer recording every event instead of delivering it."""
    return RecordingChannelLayer()


@pytest.fixture
def make_recorder(channel_layer):
    """
    Factory for EventRecorders (one per simulated connection).

    Usage:
        def test_example(make_recorder):
            gone = make_recorder(closed=True)
    """

    def _make_recorder(closed=False):
        recorder = EventRecorder(channel_layer)
        if closed:
            recorder.close()
        return recorder

    return _make_recorder


@pytest.fixture
def recorder(make_recorder):
    """A fresh EventRecorder."""
    return make_recorder()


@pytest.fixture
def registry(channel_layer):
    """Isolated registry checking membership against the test database."""
    return SessionRegistry(
        membership=database_sync_to_async(ConversationService.check_membership),
        channel_layer=channel_layer,
    )


@pytest.fixture
def coordinator(registry):
    return DeliveryCoordinator(registry)


@pytest.fixture
def relay(registry, coordinator):
    return RelayEngine(registry, coordinator)
