from flask import Blueprint, current_app

from services import current_services

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            database:
              type: string
              example: connected
            version:
              type: string
              example: 1.0.0
      503:
        description: Database unreachable
    """
    services = current_services()
    db_ok = services.storage.ping()
    body = {
        "status": "ok" if db_ok else "degraded",
        "database": "connected" if db_ok else "unreachable",
        "auth_configured": services.codec.configured,
        "environment": current_app.config.get("APP_ENV"),
        "version": "1.0.0",
    }
    return body, 200 if db_ok else 503
