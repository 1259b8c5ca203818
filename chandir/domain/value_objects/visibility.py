"""Listing visibility of a channel.

A channel is listed only when the crawler reports it reachable (`active`) and
no operator has hidden it (`admin_hidden`). The SQL filter used by listing
queries and statistics is derived from the same `LISTED` state, so the two can
never disagree.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement


@dataclass(frozen=True)
class Visibility:
    active: bool
    admin_hidden: bool

    def is_listed(self) -> bool:
        return self == LISTED

    def toggled_hidden(self) -> "Visibility":
        return Visibility(active=self.active, admin_hidden=not self.admin_hidden)


LISTED = Visibility(active=True, admin_hidden=False)


def listed_filter(active_column: Any, hidden_column: Any) -> ColumnElement[bool]:
    """SQL predicate matching exactly the rows for which `is_listed()` holds."""
    return and_(active_column.is_(LISTED.active), hidden_column.is_(LISTED.admin_hidden))
