from datetime import timedelta

import pytest

from tableside.application.session_resolver import (
    EXPIRY_ACTIVE,
    EXPIRY_NONE_KNOWN,
    EXPIRY_PASSED,
    STATE_EXPIRED,
    STATE_RESOLVED,
    STATE_UNRESOLVED,
    TableSessionResolver,
    expiry_state,
    normalize_table,
)
from tableside.core import keys
from tableside.domain.models import TableSession
from tableside.domain.errors import ApiError, NetworkError, SessionExpiredError, TokenResolutionError

from conftest import NOW, SLUG, make_session


def test_token_resolves_to_session(resolver, api, store):
    assert resolver.state(SLUG) == STATE_UNRESOLVED

    session = resolver.resolve(SLUG, token="tok-1")

    assert session.table_number == "5"
    assert resolver.state(SLUG) == STATE_RESOLVED
    assert api.resolve_calls == [(SLUG, "tok-1")]
    assert store.get(keys.table_session_key(SLUG)) is not None
    assert resolver.scope(SLUG).table_session_id == session.table_session_id


def test_same_token_reuses_live_resolution(resolver, api):
    resolver.resolve(SLUG, token="tok-1")
    resolver.resolve(SLUG, token=" tok-1 ")
    assert len(api.resolve_calls) == 1


def test_new_token_always_resolves_again(resolver, api):
    api.tokens["tok-2"] = make_session(session_id="second", table="5")
    resolver.resolve(SLUG, token="tok-1")
    session = resolver.resolve(SLUG, token="tok-2")

    assert session.table_session_id == "second"
    assert [t for _, t in api.resolve_calls] == ["tok-1", "tok-2"]


def test_session_already_expired_at_resolution_is_rejected(resolver, api):
    api.tokens["stale"] = make_session(expires_in=-1)

    with pytest.raises(TokenResolutionError):
        resolver.resolve(SLUG, token="stale")
    assert resolver.state(SLUG) == STATE_UNRESOLVED


@pytest.mark.parametrize("status", [400, 401, 403, 404, 410])
def test_rejected_token_is_a_rescan_condition(resolver, api, status):
    api.tokens["bad"] = ApiError(status, "Invalid or expired token", {"message": "Invalid or expired token"})

    with pytest.raises(TokenResolutionError) as excinfo:
        resolver.resolve(SLUG, token="bad")
    assert isinstance(excinfo.value.__cause__, ApiError)


def test_server_failure_is_passed_through(resolver, api):
    api.tokens["boom"] = ApiError(500, "Internal Server Error", "oops")

    with pytest.raises(ApiError) as excinfo:
        resolver.resolve(SLUG, token="boom")
    assert not isinstance(excinfo.value, TokenResolutionError)
    assert excinfo.value.status == 500


def test_network_failure_is_a_retry_condition(resolver, api):
    api.tokens["offline"] = NetworkError("connection refused")

    with pytest.raises(NetworkError):
        resolver.resolve(SLUG, token="offline")


def test_guest_entry_normalizes_table(resolver, api):
    session = resolver.resolve(SLUG, table="  12 ")
    assert api.guest_calls == [(SLUG, "12")]
    assert session.table_number == "12"
    assert session.session_secret is None


def test_blank_guest_table_is_rejected(resolver, api):
    with pytest.raises(TokenResolutionError):
        resolver.resolve(SLUG, table="   ")
    assert api.guest_calls == []


def test_normalize_table_truncates():
    assert normalize_table("x" * 50) == "x" * 40
    assert normalize_table(None) is None


def test_expiry_moves_to_expired_and_forgets_session(resolver, store, clock):
    resolver.resolve(SLUG, token="tok-1")
    clock.advance(minutes=91)

    with pytest.raises(SessionExpiredError):
        resolver.current(SLUG)
    assert resolver.state(SLUG) == STATE_EXPIRED
    assert store.get(keys.table_session_key(SLUG)) is None


def test_expired_session_is_not_reused_for_the_same_token(resolver, api, clock):
    resolver.resolve(SLUG, token="tok-1")
    clock.advance(minutes=91)
    api.tokens["tok-1"] = make_session(session_id="fresh")
    api.tokens["tok-1"] = api.tokens["tok-1"].model_copy(update={"expires_at": clock() + timedelta(minutes=90)})

    session = resolver.resolve(SLUG, token="tok-1")

    assert session.table_session_id == "fresh"
    assert len(api.resolve_calls) == 2
    assert resolver.state(SLUG) == STATE_RESOLVED


def test_rejected_by_server_expires_the_session(resolver):
    resolver.resolve(SLUG, token="tok-1")
    resolver.invalidate(SLUG)

    assert resolver.state(SLUG) == STATE_EXPIRED
    with pytest.raises(SessionExpiredError):
        resolver.current(SLUG)


def test_no_known_expiry_is_its_own_state(resolver, api, clock):
    api.tokens["open"] = make_session(expires_in=None)
    session = resolver.resolve(SLUG, token="open")

    assert expiry_state(session, clock()) == EXPIRY_NONE_KNOWN
    clock.advance(days=3650)
    assert resolver.current(SLUG) == session


def test_far_future_expiry_is_active_not_unknown():
    session = make_session(expires_in=60 * 24 * 365 * 50)
    assert expiry_state(session, NOW) == EXPIRY_ACTIVE
    assert expiry_state(make_session(expires_in=0), NOW) == EXPIRY_PASSED


def test_persisted_session_survives_reload(api, store, clock):
    TableSessionResolver(api, store, clock=clock).resolve(SLUG, token="tok-1")

    reloaded = TableSessionResolver(api, store, clock=clock)
    session = reloaded.resolve(SLUG)

    assert session.table_number == "5"
    assert len(api.resolve_calls) == 1


def test_nothing_to_resolve(resolver):
    with pytest.raises(TokenResolutionError):
        resolver.resolve(SLUG)


def test_malformed_persisted_session_is_absent(resolver, store):
    store.set(keys.table_session_key(SLUG), '{"tableNumber": "5"}')
    with pytest.raises(TokenResolutionError):
        resolver.current(SLUG)


def test_naive_expiry_is_read_as_utc():
    naive = TableSession.model_validate({
        "tableSessionId": "x",
        "tableNumber": 7,
        "expiresAt": "2026-10-19T12:30:00",
    })
    assert naive.table_number == "7"
    assert naive.expires_at == NOW + timedelta(minutes=30)
