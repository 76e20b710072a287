"""
utils/records.py
----------------
Partial updates of domain dataclasses.
"""

from models.errors import ValidationError


def apply_changes(record, **changes) -> None:
    """
    Set every attribute in ``changes`` whose value is not None.

    Raises:
        ValidationError: ``record`` has no attribute with one of the names.
    """
    for name, value in changes.items():
        if value is None:
            continue
        if not hasattr(record, name):
            raise ValidationError(f"Campo desconhecido: {name}", field=name)
        setattr(record, name, value)
