"""Create all tables. Run on app startup."""
import logging

from sqlalchemy.engine import Engine

from clinicrx.db.base import Base
from clinicrx.db.session import engine as default_engine
from clinicrx.models import patient, prescription, inventory  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(engine: Engine = None):
    bind = engine or default_engine
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ready (%s)", bind.url.render_as_string(hide_password=True))
