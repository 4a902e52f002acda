"""
OpenAPI schema customizations for drf-spectacular.

- RenewingJWTScheme documents RenewingJWTAuthentication as a bearer scheme
  (drf-spectacular cannot introspect custom authentication classes)
- group_endpoints is a postprocessing hook that tags operations by app

Tag naming follows the pattern: [App Name] - [Group Name]
Examples:
- Auth (signup, login, refresh, logout, me)
- Chat - Conversations
- Chat - Messages
"""

from drf_spectacular.extensions import OpenApiAuthenticationExtension


class RenewingJWTScheme(OpenApiAuthenticationExtension):
    target_class = "authentication.authentication.RenewingJWTAuthentication"
    name = "Bearer"

    def get_security_definition(self, auto_schema):
        return {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": (
                "Access token. When it has expired and the refresh cookie is "
                "present, the response carries a new one in X-Access-Token."
            ),
        }


TAG_DESCRIPTIONS = [
    {
        "name": "Auth",
        "description": "Account signup, login, credential refresh and logout.",
    },
    {
        "name": "Chat - Conversations",
        "description": "Create, list and delete conversations between participants.",
    },
    {
        "name": "Chat - Messages",
        "description": "Message history, sending (with optional attachment) and read receipts.",
    },
]


def group_endpoints(result, generator, request, public):
    """
    Postprocessing hook to group API endpoints by function.

    Views normally set tags= in @extend_schema; this catches the rest by
    operation id prefix and adds tag descriptions.
    """
    paths = result.get("paths", {})

    for path, methods in paths.items():
        for method, operation in methods.items():
            if not isinstance(operation, dict):
                continue

            operation_id = operation.get("operationId", "")

            if operation.get("tags") and operation["tags"][0] in {
                tag["name"] for tag in TAG_DESCRIPTIONS
            }:
                continue

            if operation_id.startswith("auth_"):
                operation["tags"] = ["Auth"]
            elif operation_id.startswith("chat_conversations_") and "messages" in path:
                operation["tags"] = ["Chat - Messages"]
            elif operation_id.startswith("chat_"):
                operation["tags"] = ["Chat - Conversations"]

    result["tags"] = TAG_DESCRIPTIONS
    return result
