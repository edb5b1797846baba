from typing import Annotated
from pydantic import BeforeValidator
from ledgerbook.utils.money import Amount


def _amount_to_str(value):
    if isinstance(value, Amount):
        return value.to_fixed_string()
    return value


# Amounts leave the API as fixed-point strings ("1000.00"), never as floats
AmountStr = Annotated[str, BeforeValidator(_amount_to_str)]
