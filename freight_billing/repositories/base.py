"""Shared helpers for the SQLAlchemy Core repositories."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import Table, func, select
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session

from ..errors import ConflictError

logger = logging.getLogger(__name__)


class BaseRepository:
    """Holds the engine and the lookups every repository needs."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @staticmethod
    def _require(session: Session, table: Table, row_id: int, entity: str) -> Row:
        """Return the row with ``row_id`` or raise :class:`NoResultFound`."""

        row = session.execute(select(table).where(table.c.id == row_id)).one_or_none()
        if row is None:
            raise NoResultFound(f"{entity} not found")
        return row

    @staticmethod
    def _exists(session: Session, table: Table, *conditions: Any) -> bool:
        row = session.execute(
            select(table.c.id).where(*conditions).limit(1)
        ).first()
        return row is not None

    @classmethod
    def _ensure_unique_name(
        cls,
        session: Session,
        table: Table,
        name: str,
        entity: str,
        *,
        exclude_id: Optional[int] = None,
    ) -> None:
        """Raise :class:`ConflictError` when ``name`` is already taken.

        Names are compared case-insensitively so ``"DHL"`` and ``"dhl"``
        cannot coexist.
        """

        conditions = [func.lower(table.c.name) == name.strip().lower()]
        if exclude_id is not None:
            conditions.append(table.c.id != exclude_id)
        if cls._exists(session, table, *conditions):
            raise ConflictError(f"{entity} with this name already exists")

    @staticmethod
    def _log_delete(entity: str, row_id: object) -> None:
        logger.info("Deleted %s %s", entity.lower(), row_id)
