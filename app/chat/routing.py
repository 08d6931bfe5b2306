"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/events/ - One event stream per user connection

Authentication:
    JWT token passed as query parameter (?token=<jwt_access_token>) or as
    the subprotocol pair ["jwt", <token>]. JWTAuthMiddleware resolves it
    and attaches the user to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/events/", consumers.EventConsumer.as_asgi()),
]
