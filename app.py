"""Process entry point: ``python app.py`` or ``flask --app app run``."""

from __future__ import annotations

import os

from likemint import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
