"""Flask Blueprint registry.

``register_blueprints`` is called from ``create_app()`` once the bootstrap
context has built the collaborators the views depend on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

    from likemint.bootstrap import BootstrapContext


def register_blueprints(app: Flask, ctx: BootstrapContext) -> None:
    from .api import create_blueprint

    app.register_blueprint(create_blueprint(ctx.pipeline, ctx.neynar, ctx.mirror))
