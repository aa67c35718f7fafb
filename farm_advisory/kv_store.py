# farm_advisory/kv_store.py
from __future__ import annotations

import copy
import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farm_advisory import models
from farm_advisory.errors import InternalFault

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    String keys to JSON values on top of the `kv_store` table.

    Every write commits on its own; there are no multi-key transactions.
    Values are copied in and out so callers can mutate what they get back.
    """

    def __init__(self, db: Session):
        self._db = db

    def get(self, key: str) -> Optional[Any]:
        row = self._db.get(models.KVEntry, key)
        if row is None:
            return None
        return copy.deepcopy(row.value)

    def set(self, key: str, value: Any) -> None:
        row = self._db.get(models.KVEntry, key)
        if row is None:
            self._db.add(models.KVEntry(key=key, value=copy.deepcopy(value)))
        else:
            row.value = copy.deepcopy(value)
        self._commit()

    def delete(self, key: str) -> None:
        row = self._db.get(models.KVEntry, key)
        if row is None:
            return
        self._db.delete(row)
        self._commit()

    def list(self, prefix: str) -> List[Tuple[str, Any]]:
        rows = (
            self._db.query(models.KVEntry)
            .filter(models.KVEntry.key.startswith(prefix, autoescape=True))
            .order_by(models.KVEntry.key)
            .all()
        )
        return [(r.key, copy.deepcopy(r.value)) for r in rows]

    def _commit(self) -> None:
        try:
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error("kv_store commit failed, rolled back")
            raise InternalFault("key-value store write failed") from e
