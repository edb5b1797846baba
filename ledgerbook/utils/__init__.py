from sqlalchemy.orm import class_mapper
from .money import Amount, MONEY_SCALE, RATE_SCALE, LEGACY_TOLERANCE, sum_amounts


def sqlalchemy_to_dict(obj):
    """Convert a SQLAlchemy object to a JSON-safe dictionary."""
    if not obj:
        return None
    mapper = class_mapper(obj.__class__)
    result = {}
    for c in mapper.columns:
        value = getattr(obj, c.key)
        # Convert datetime objects to ISO format strings
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        # Amounts are exchanged as fixed-point strings, never floats
        elif isinstance(value, Amount):
            value = value.to_fixed_string()
        # Convert enum types to strings
        elif hasattr(value, 'value') and hasattr(value, 'name'):
            value = value.value
        result[c.key] = value
    return result


__all__ = ['Amount', 'MONEY_SCALE', 'RATE_SCALE', 'LEGACY_TOLERANCE', 'sum_amounts', 'sqlalchemy_to_dict']
