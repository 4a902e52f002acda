"""
Chat app for real-time messaging between customers and support staff.

This app handles:
- Conversations (create-or-find by participant set and topic)
- Message sending and paginated history
- Read receipts (per-message reader sets) and unread counts
- Live delivery over one WebSocket channel (join, typing, send, mark read)

Related apps:
    - authentication: User model, JWT verification

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the WebSocket handler, relay.py for the session
    state machine and routing.py for WebSocket URL patterns.

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.create_or_find(
        creator=user,
        participant_ids=[user.id, agent.id],
        topic="Order #12",
    )
    conversation, created = result.data

    result = MessageService.send_message(conversation.id, user, body="Hello!")
"""
