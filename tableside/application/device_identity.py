import logging
import secrets
import string
import time
from typing import Optional

from tableside.application.persisted import read_raw
from tableside.core import keys
from tableside.domain.errors import StorageError
from tableside.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)

MIN_DEVICE_ID_LENGTH = 8
_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_device_id() -> str:
    stamp = _base36(int(time.time() * 1000))
    tail = "".join(secrets.choice(_BASE36) for _ in range(12))
    return f"{stamp}-{tail}"


class DeviceIdentity:
    def __init__(self, store: IKeyValueStore):
        self.store = store
        self._ephemeral: Optional[str] = None

    def get_or_create(self) -> str:
        existing = read_raw(self.store, keys.device_key())
        if existing and len(existing) >= MIN_DEVICE_ID_LENGTH:
            return existing
        if self._ephemeral:
            return self._ephemeral

        created = generate_device_id()
        try:
            self.store.set(keys.device_key(), created)
        except StorageError as e:
            # An id for this page view beats no id at all
            logger.warning("⚠️ Device id not persisted (%s); using an ephemeral one.", e)
            self._ephemeral = created
        return created
