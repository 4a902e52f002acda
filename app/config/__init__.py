# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URL configuration and the ASGI/WSGI entry points. The ASGI
# application (config.asgi) serves both HTTP and the /ws/chat/ WebSocket.
# =============================================================================
