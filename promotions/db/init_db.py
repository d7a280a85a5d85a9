from sqlalchemy.orm import Session
import structlog

from promotions.core.config import settings
from promotions.db import base  # noqa: F401
from promotions.db.base_class import Base
from promotions.db.session import SessionLocal, engine
from promotions.models.payment_currency import PaymentCurrency

logger = structlog.get_logger()


def seed_primary_currency(db: Session) -> PaymentCurrency:
    """Ensure the configured primary payment currency exists."""
    iso = settings.PRIMARY_CURRENCY_ISO
    currency = db.query(PaymentCurrency).filter(PaymentCurrency.primary == True).first()
    if currency:
        return currency

    currency = db.query(PaymentCurrency).filter(PaymentCurrency.iso == iso).first()
    if currency is None:
        currency = PaymentCurrency(iso=iso, rate=1.0)
        db.add(currency)
    currency.primary = True
    db.commit()
    db.refresh(currency)
    logger.info("primary_currency_seeded", iso=iso)
    return currency


def init_db() -> None:
    """Create tables for local SQLite setups; server databases are migrated with Alembic."""
    if settings.is_sqlite:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_primary_currency(db)
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
