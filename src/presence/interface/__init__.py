"""Network surface of the hub: WebSocket relay and admin reporting."""

from presence.interface.ws_server import create_app

__all__ = ["create_app"]
