"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Conversation, Participant, Message model tests
- test_services.py: ConversationService, MessageService, AttachmentService tests
- test_registry.py: SessionRegistry rooms and fan-out
- test_delivery.py: DeliveryCoordinator on the request and live paths
- test_relay.py: RelayEngine session state machine
- test_middleware.py: JWTAuthMiddleware token sources
- test_consumers.py: WebSocket journeys through ChatConsumer
- test_views.py: REST API endpoint tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
