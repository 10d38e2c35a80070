from .bootstrap import build_agent, run
from .logging import setup_logger
from .server import create_app, serve
from .settings import AppSettings, ConfigurationError

__all__ = [
    "AppSettings",
    "ConfigurationError",
    "build_agent",
    "create_app",
    "run",
    "serve",
    "setup_logger",
]
