import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

import pytz
from pydantic import TypeAdapter

from tableside.application.persisted import read_value, write_value
from tableside.core import keys
from tableside.domain.errors import ApiError, NetworkError, SessionExpiredError, TokenResolutionError
from tableside.domain.models import SessionScope, TableSession
from tableside.interfaces.IKeyValueStore import IKeyValueStore
from tableside.interfaces.ITableApi import ITableApi

logger = logging.getLogger(__name__)

# Define our States
STATE_UNRESOLVED = "UNRESOLVED"
STATE_RESOLVED = "RESOLVED"
STATE_EXPIRED = "EXPIRED"

# What the client knows about a session's lifetime
EXPIRY_NONE_KNOWN = "NO_KNOWN_EXPIRY"
EXPIRY_ACTIVE = "ACTIVE"
EXPIRY_PASSED = "PASSED"

# Remote answers that mean "this token will never work", as opposed to "try again"
REJECTED_TOKEN_STATUSES = {400, 401, 403, 404, 410}

MAX_TABLE_LENGTH = 40

_session_adapter = TypeAdapter(TableSession)


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def normalize_table(value: Optional[str]) -> Optional[str]:
    s = (value or "").strip()
    if not s:
        return None
    return s[:MAX_TABLE_LENGTH]


def expiry_state(session: TableSession, now: datetime) -> str:
    if session.expires_at is None:
        return EXPIRY_NONE_KNOWN
    if session.expires_at <= now:
        return EXPIRY_PASSED
    return EXPIRY_ACTIVE


@dataclass
class TableVisit:
    state: str = STATE_UNRESOLVED
    session: Optional[TableSession] = None
    token: Optional[str] = None


class TableSessionResolver:
    """Turns a scanned table token (or a guest table number) into a TableSession.

    Tracks one visit per restaurant slug. A session only stays usable while
    its expiry has not passed and the REST boundary keeps accepting it.
    """

    def __init__(self, api: ITableApi, store: IKeyValueStore, clock: Callable[[], datetime] = utc_now):
        self.api = api
        self.store = store
        self.clock = clock
        self._visits: Dict[str, TableVisit] = {}

    def state(self, slug: str) -> str:
        visit = self._visits.get(slug)
        return visit.state if visit else STATE_UNRESOLVED

    def resolve(self, slug: str, token: Optional[str] = None, table: Optional[str] = None) -> TableSession:
        token = (token or "").strip() or None
        visit = self._visits.setdefault(slug, TableVisit())
        if visit.state == STATE_EXPIRED:
            self._visits[slug] = visit = TableVisit()

        if token:
            # Only the very same raw token may reuse a live resolution
            if (
                visit.state == STATE_RESOLVED
                and visit.token == token
                and expiry_state(visit.session, self.clock()) != EXPIRY_PASSED
            ):
                return visit.session
            session = self._call_boundary(lambda: self.api.resolve_token(slug, token))
            return self._accept(slug, session, token)

        if table is not None:
            guest_table = normalize_table(table)
            if guest_table is None:
                raise TokenResolutionError("Table number is empty. Please scan the table QR code.")
            session = self._call_boundary(lambda: self.api.start_guest_session(slug, guest_table))
            return self._accept(slug, session, None)

        try:
            return self.current(slug)
        except SessionExpiredError as e:
            raise TokenResolutionError("Your table session expired. Please scan the QR code again.") from e

    def current(self, slug: str) -> TableSession:
        """The usable session for ``slug``; raises once it has expired."""
        visit = self._visits.get(slug)
        if visit is None or visit.state == STATE_UNRESOLVED:
            persisted = read_value(self.store, keys.table_session_key(slug), _session_adapter)
            if persisted is None:
                raise TokenResolutionError("No table session. Please scan the table QR code.")
            visit = self._visits[slug] = TableVisit(state=STATE_RESOLVED, session=persisted)

        if visit.state == STATE_EXPIRED or visit.session is None:
            raise SessionExpiredError("Your table session expired. Please rescan the QR code.")

        if expiry_state(visit.session, self.clock()) == EXPIRY_PASSED:
            logger.info("⏰ Table session %s for %s expired", visit.session.table_session_id, slug)
            self._expire(slug)
            raise SessionExpiredError("Your table session expired. Please rescan the QR code.")

        return visit.session

    def scope(self, slug: str) -> SessionScope:
        return SessionScope.from_session(slug, self.current(slug))

    def invalidate(self, slug: str) -> None:
        """The REST boundary rejected the session; never reuse it for new orders."""
        logger.info("🚫 Table session for %s rejected by the server", slug)
        self._expire(slug)

    # --- internals ---

    def _call_boundary(self, fn: Callable[[], TableSession]) -> TableSession:
        try:
            return fn()
        except NetworkError:
            raise
        except ApiError as e:
            if e.status in REJECTED_TOKEN_STATUSES:
                raise TokenResolutionError(e.message or "Invalid or expired table token") from e
            raise

    def _accept(self, slug: str, session: TableSession, token: Optional[str]) -> TableSession:
        if expiry_state(session, self.clock()) == EXPIRY_PASSED:
            raise TokenResolutionError("Invalid or expired table token")
        if session.expires_at is None:
            logger.info("Table session %s has no known expiry", session.table_session_id)

        self._visits[slug] = TableVisit(state=STATE_RESOLVED, session=session, token=token)
        write_value(self.store, keys.table_session_key(slug), _session_adapter, session)
        return session

    def _expire(self, slug: str) -> None:
        self._visits[slug] = TableVisit(state=STATE_EXPIRED)
        self.store.remove(keys.table_session_key(slug))
