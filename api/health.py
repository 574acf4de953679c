from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import storage

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check, including a round trip to the token store
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
              example: ok
      503:
        description: Database unreachable
    """
    try:
        storage.get_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        storage.rollback()
        return {"status": "degraded", "database": "unreachable"}, 503
    return {"status": "ok", "database": "ok"}, 200
