"""
Chat application configuration.

ready() builds the process-wide live-delivery objects:
    registry: SessionRegistry (sessions and rooms of this process)
    coordinator: DeliveryCoordinator (write-and-broadcast for both paths)
    relay: RelayEngine (WebSocket session state machine)

Views reach the coordinator with apps.get_app_config("chat").coordinator.
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    registry = None
    coordinator = None
    relay = None

    def ready(self):
        from channels.db import database_sync_to_async

        from chat.delivery import DeliveryCoordinator
        from chat.registry import SessionRegistry
        from chat.relay import RelayEngine
        from chat.services import ConversationService

        # Channel layer is resolved from CHANNEL_LAYERS on first send
        self.registry = SessionRegistry(
            membership=database_sync_to_async(ConversationService.check_membership)
        )
        self.coordinator = DeliveryCoordinator(self.registry)
        self.relay = RelayEngine(self.registry, self.coordinator)
