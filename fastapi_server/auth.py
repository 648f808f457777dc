from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    user_id: str
    email: str


def user_from_headers(headers: Mapping[str, str]) -> User | None:
    # Identity is asserted by the fronting proxy through x-user-id.
    x_user_id = (headers.get("x-user-id") or "").strip()
    if not x_user_id:
        return None
    return User(user_id=x_user_id, email=x_user_id)
