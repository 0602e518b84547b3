"""likemint: turns Farcaster likes into signed mint arguments."""

from .app_factory import create_app

__version__ = "0.3.0"

__all__ = ["create_app", "__version__"]
