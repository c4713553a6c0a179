import logging
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.user import User
from app.services import interval_service, user_service

logger = logging.getLogger(__name__)


def create_tables():
    Base.metadata.create_all(bind=engine)


def seed_defaults():
    """Default admin and interval catalogue; safe to run on every start."""
    db = SessionLocal()
    try:
        admin = user_service.seed_admin(db)
        created = interval_service.seed_intervals(db, settings.default_intervals())
        logger.info(f"Interval catalogue seeded ({created} new)")

        if admin.active_interval_id is None:
            default_interval, _ = interval_service.get_active_interval(db, admin)
            if default_interval is not None:
                db.query(User).filter(User.id == admin.id).update({User.active_interval_id: default_interval.id})
                db.commit()
                logger.info(f"Admin active interval set to {default_interval.interval_name}")

    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Seeding failed: {e}")
        raise
    finally:
        db.close()


def init_db():
    create_tables()
    seed_defaults()
