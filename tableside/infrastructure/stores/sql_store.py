import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tableside.domain.errors import StorageError
from tableside.infrastructure.database import KeyValueEntry, make_session_factory
from tableside.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)

class SqlKeyValueStore(IKeyValueStore):
    def __init__(self, engine: Engine):
        self.SessionLocal = make_session_factory(engine)

    def get(self, key: str) -> Optional[str]:
        session = self.SessionLocal()
        try:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error("❌ DB Read Error: %s", e)
            raise StorageError(f"could not read {key}") from e
        finally:
            session.close()

    def set(self, key: str, value: str) -> None:
        session = self.SessionLocal()
        try:
            session.merge(KeyValueEntry(key=key, value=value))
            session.commit()
        except SQLAlchemyError as e:
            logger.error("❌ DB Error: %s", e)
            session.rollback()
            raise StorageError(f"could not write {key}") from e
        finally:
            session.close()

    def remove(self, key: str) -> None:
        session = self.SessionLocal()
        try:
            session.query(KeyValueEntry).filter(KeyValueEntry.key == key).delete()
            session.commit()
        except SQLAlchemyError as e:
            logger.error("❌ DB Error: %s", e)
            session.rollback()
            raise StorageError(f"could not remove {key}") from e
        finally:
            session.close()
