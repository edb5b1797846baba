from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from ledgerbook.utils.money import Amount, MONEY_SCALE


class AmountType(TypeDecorator):
    """
    Stores an Amount as a BIGINT count of minor units.

    Keeping money in integer columns means ``balance = balance + delta`` is
    exact integer arithmetic inside the database on every backend.
    """

    impl = BigInteger
    cache_ok = True

    def __init__(self, scale: int = MONEY_SCALE, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.scale = scale

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return Amount.coerce(value, self.scale).units

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Amount(int(value), self.scale)
