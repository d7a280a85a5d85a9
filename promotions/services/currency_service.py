from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union
from sqlalchemy import func
from sqlalchemy.orm import Session

from promotions.core.config import settings
from promotions.core.exceptions import CurrencyException
from promotions.models.payment_currency import PaymentCurrency
from promotions.utils.iso_currencies import ISO_CURRENCIES

CurrencyLike = Union[str, PaymentCurrency, None]


class CurrencyService:

    @staticmethod
    def get_primary_payment_currency_iso(db: Optional[Session] = None) -> str:
        """ISO code of the primary payment currency, falling back to PRIMARY_CURRENCY_ISO."""
        if db is not None:
            primary = db.query(PaymentCurrency).filter(PaymentCurrency.primary == True).first()
            if primary:
                return primary.iso.upper()
        return settings.PRIMARY_CURRENCY_ISO

    @staticmethod
    def get_payment_currency_by_iso(db: Session, iso: str) -> Optional[PaymentCurrency]:
        return db.query(PaymentCurrency).filter(func.upper(PaymentCurrency.iso) == iso.upper()).first()

    @staticmethod
    def resolve_iso(currency: CurrencyLike, db: Optional[Session] = None) -> str:
        if currency is None:
            return CurrencyService.get_primary_payment_currency_iso(db)
        if isinstance(currency, PaymentCurrency):
            return currency.iso.upper()
        return currency.upper()

    @staticmethod
    def get_minor_unit(iso: str) -> int:
        data = ISO_CURRENCIES.get(iso.upper())
        if data is None:
            raise CurrencyException(f"No currency found with ISO code “{iso}”")
        return data[1]

    @staticmethod
    def default_decimals(db: Optional[Session] = None) -> int:
        return CurrencyService.get_minor_unit(CurrencyService.get_primary_payment_currency_iso(db))

    @staticmethod
    def round(amount: Union[float, int, Decimal], currency: CurrencyLike = None, db: Optional[Session] = None) -> float:
        """
        Round an amount to the currency's minor unit, half away from zero.

        Without a currency the primary payment currency is used.
        """
        decimals = CurrencyService.get_minor_unit(CurrencyService.resolve_iso(currency, db))
        exponent = Decimal(1).scaleb(-decimals)
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        return float(value.quantize(exponent, rounding=ROUND_HALF_UP))

    @staticmethod
    def convert(db: Session, amount: float, iso: str) -> float:
        """Convert an amount in the primary currency into a configured payment currency."""
        payment_currency = CurrencyService.get_payment_currency_by_iso(db, iso)
        if not payment_currency:
            raise CurrencyException("Trying to convert to a currency that is not configured")
        return float(amount) * payment_currency.rate

    @staticmethod
    def format_as_currency(
        amount,
        currency: CurrencyLike = None,
        convert: bool = False,
        format: bool = True,
        strip_zeros: bool = False,
        db: Optional[Session] = None,
    ) -> str:
        """Optionally convert and format an amount, e.g. ``$1,234.50``."""
        if not convert and not format:
            return str(amount)

        iso = CurrencyService.resolve_iso(currency, db)

        if convert:
            if db is None:
                raise CurrencyException("Trying to convert to a currency that is not configured")
            amount = CurrencyService.convert(db, amount, iso)

        if not format:
            return str(amount)

        decimals = CurrencyService.get_minor_unit(iso)
        amount = CurrencyService.round(amount, iso)
        if strip_zeros and float(amount).is_integer():
            decimals = 0

        symbol = ISO_CURRENCIES[iso][2]
        sign = "-" if amount < 0 else ""
        return f"{sign}{symbol}{abs(amount):,.{decimals}f}"
