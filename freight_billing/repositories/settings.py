"""Key/value application settings stored in the database."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import NoResultFound

from packages.freight_common import Setting

from ..database import session_scope, settings
from .base import BaseRepository


def _normalise_key(key: str) -> str:
    return (key or "").strip()


class SettingsRepository(BaseRepository):
    def list_settings(self) -> List[Setting]:
        with session_scope(self._engine) as session:
            rows = session.execute(select(settings).order_by(settings.c.key)).all()
        return [self._row_to_setting(row) for row in rows]

    def get_setting(self, key: str) -> Setting:
        with session_scope(self._engine) as session:
            row = session.execute(
                select(settings).where(settings.c.key == _normalise_key(key))
            ).one_or_none()
        if row is None:
            raise NoResultFound("Setting not found")
        return self._row_to_setting(row)

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        try:
            return self.get_setting(key).value
        except NoResultFound:
            return default

    def upsert_setting(self, setting: Setting) -> Setting:
        """Store ``setting.value`` under ``setting.key``, replacing any old value."""

        key = _normalise_key(setting.key)
        with session_scope(self._engine) as session:
            existing = session.execute(
                select(settings.c.id).where(settings.c.key == key)
            ).scalar_one_or_none()
            if existing is None:
                session.execute(insert(settings).values(key=key, value=setting.value))
            else:
                session.execute(
                    update(settings)
                    .where(settings.c.id == existing)
                    .values(value=setting.value)
                )
        return self.get_setting(key)

    def delete_setting(self, key: str) -> None:
        key = _normalise_key(key)
        with session_scope(self._engine) as session:
            result = session.execute(delete(settings).where(settings.c.key == key))
            if result.rowcount == 0:
                raise NoResultFound("Setting not found")
        self._log_delete("Setting", key)

    @staticmethod
    def _row_to_setting(row) -> Setting:
        values = row._mapping
        return Setting(
            id=values["id"],
            key=values["key"],
            value=values["value"],
            updated_at=values["updated_at"],
        )
