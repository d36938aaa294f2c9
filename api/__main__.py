"""
Entrypoint for running the API in development:  python -m api
"""
import os
from . import create_app
from services import EXTENSION_KEY

# Respect APP_ENV for configuration selection (handled in get_config())
app = create_app()

if __name__ == "__main__":
    # Dev-friendly defaults; in production run via a WSGI server (gunicorn/uwsgi)
    host = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_RUN_PORT", "5000"))
    debug = os.getenv("FLASK_DEBUG", str(app.config.get("DEBUG", True))).lower() in ("1", "true", "yes")
    try:
        app.run(host=host, port=port, debug=debug)
    finally:
        app.extensions[EXTENSION_KEY].shutdown()
