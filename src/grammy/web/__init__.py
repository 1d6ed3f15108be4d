"""grammy web server: REST check/apply endpoints and a live editing WebSocket."""

from grammy.web.app import create_app
from grammy.web.config import Config

__all__ = ["Config", "create_app"]
