from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass

from fastapi import Header
from sqlalchemy.orm import Session

from talentflow.core.dispatcher import SideEffectDispatcher
from talentflow.core.handlers import build_default_dispatcher
from talentflow.db.session import get_db_session
from talentflow.types import Role


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_dispatcher() -> SideEffectDispatcher:
    return build_default_dispatcher()


@dataclass(slots=True, frozen=True)
class Identity:
    role: Role
    user_id: int


def get_identity(
    x_user_role: Role = Header(...),
    x_user_id: int = Header(...),
) -> Identity:
    return Identity(role=x_user_role, user_id=x_user_id)
