"""Ordered severity levels shared by notifications and preferences."""

from __future__ import annotations

from enum import Enum

from app.domain.exceptions import ValidationError


class Importance(str, Enum):
    """Notification severity, totally ordered ``low < medium < high < urgent``."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        return self.rank < _rank_of(other)

    def __le__(self, other: object) -> bool:
        return self.rank <= _rank_of(other)

    def __gt__(self, other: object) -> bool:
        return self.rank > _rank_of(other)

    def __ge__(self, other: object) -> bool:
        return self.rank >= _rank_of(other)


_RANKS: dict[Importance, int] = {
    level: index for index, level in enumerate(Importance)
}


def _rank_of(other: object) -> int:
    # Plain strings would otherwise fall back to alphabetical str ordering.
    return parse_importance(other).rank


def parse_importance(value: Importance | str | None) -> Importance:
    """Return the :class:`Importance` matching ``value`` or raise ``ValidationError``."""

    if isinstance(value, Importance):
        return value
    try:
        return Importance(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Importancia no válida: {value}") from exc


__all__ = ["Importance", "parse_importance"]
