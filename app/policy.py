"""Principal identity and the administrator capability check."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable


@dataclass(frozen=True)
class Principal:
    id: str
    email: str
    display_name: str


class EmailAllowListPolicy:
    """Grants the admin capability to principals whose email is on the list.

    Comparison is case-insensitive and ignores surrounding whitespace.
    """

    def __init__(self, emails: Iterable[str]):
        self.emails = frozenset(e.strip().lower() for e in emails if e and e.strip())

    def is_admin(self, principal: Principal) -> bool:
        return bool(principal.email) and principal.email.strip().lower() in self.emails

    __call__ = is_admin


AdminPolicy = Callable[[Principal], bool]
