"""
Validation functions for attrs.
"""

from typing import Any, Optional

from attrs import define
from attrs.validators import in_

__all__ = ["in_", "range_", "positive"]


@define(repr=False, frozen=True)
class _RangeValidator:
    minimum: Optional[float]
    maximum: Optional[float]

    def __call__(self, inst: Any, attr: Any, value: Any) -> None:
        try:
            in_range = (self.minimum is None or self.minimum <= value) and (
                self.maximum is None or value <= self.maximum
            )
        except TypeError:
            in_range = False

        if not in_range:
            raise ValueError(
                "'{name}' must be in range [{minimum}, {maximum}]: {value!r}".format(
                    name=attr.name,
                    minimum=self.minimum,
                    maximum=self.maximum,
                    value=value,
                )
            )

    def __repr__(self) -> str:
        return "<range_ validator with [{minimum!r}, {maximum!r}]>".format(
            minimum=self.minimum, maximum=self.maximum
        )


def range_(minimum: Optional[float], maximum: Optional[float]) -> _RangeValidator:
    """
    A validator that raises a :exc:`ValueError` if the initializer is called
    with a value that does not belong in the [minimum, maximum] range. The
    check is performed using ``minimum <= value and value <= maximum``; a
    ``None`` bound is open.
    """
    return _RangeValidator(minimum, maximum)


def positive(inst: Any, attr: Any, value: Any) -> None:
    """A validator that requires a strictly positive number."""
    try:
        ok = value > 0
    except TypeError:
        ok = False
    if not ok:
        raise ValueError("'{name}' must be positive: {value!r}".format(
            name=attr.name, value=value
        ))
