from __future__ import annotations

import asyncio
import threading

import aiohttp
import pytest

from home_stats.const import HIVE_CONTENT_TYPE, NODE_ENDPOINT
from home_stats.exceptions import ActionError, AuthError, ReadError
from home_stats.hive import HiveApi

from tests.fakes import CountingAuthenticator, FakeResponse, FakeSession, node_body


def make_api(session, authenticator=None):
    return HiveApi(
        session=session,
        username="user",
        password="secret",
        pool_id="eu-west-1_pool",
        client_id="client",
        authenticator=authenticator or CountingAuthenticator(),
    )


def authenticated(session, authenticator=None):
    api = make_api(session, authenticator)
    asyncio.run(api.async_authenticate())
    return api


def test_authenticate_stores_token():
    auth = CountingAuthenticator(token="tok-1")
    api = make_api(FakeSession(), auth)

    asyncio.run(api.async_authenticate())

    assert api.has_token
    assert auth.calls == [("user", "secret", "eu-west-1_pool", "client")]


def test_authenticate_failure_raises_auth_error():
    api = make_api(FakeSession(), CountingAuthenticator(error=RuntimeError("challenge rejected")))

    with pytest.raises(AuthError) as exc:
        asyncio.run(api.async_authenticate())

    assert exc.value.operation == "authenticate"
    assert not api.has_token


def test_authenticate_without_id_token_raises():
    api = make_api(FakeSession(), CountingAuthenticator(token=None))

    with pytest.raises(AuthError, match="empty id token"):
        asyncio.run(api.async_authenticate())

    assert not api.has_token


def test_failed_authenticate_keeps_previous_token():
    auth = CountingAuthenticator(token="tok-1")
    session = FakeSession(FakeResponse(body=node_body(20.0)))
    api = authenticated(session, auth)

    auth.error = RuntimeError("network down")
    with pytest.raises(AuthError):
        asyncio.run(api.async_authenticate())

    asyncio.run(api.async_get_temperature("abc"))
    assert session.calls[0].headers["Authorization"] == "Bearer tok-1"


def test_read_requires_token():
    session = FakeSession()
    api = make_api(session)

    with pytest.raises(AuthError):
        asyncio.run(api.async_get_temperature("abc"))

    assert session.calls == []


def test_get_temperature_uses_first_node():
    session = FakeSession(FakeResponse(body=node_body(19.5, 21.0)))
    api = authenticated(session, CountingAuthenticator(token="tok-1"))

    assert asyncio.run(api.async_get_temperature("abc")) == 19.5

    call = session.calls[0]
    assert call.method == "GET"
    assert call.url == f"{NODE_ENDPOINT}abc"
    assert call.params == {"fields": "attributes.temperature"}
    assert call.headers["Authorization"] == "Bearer tok-1"
    assert call.headers["Accept"] == HIVE_CONTENT_TYPE
    assert call.headers["X-Omnia-Client"] == "ESP"


def test_integer_temperature_is_a_float():
    api = authenticated(FakeSession(FakeResponse(body=node_body(20))))

    value = asyncio.run(api.async_get_temperature("abc"))

    assert value == 20.0
    assert isinstance(value, float)


def test_empty_node_list_is_read_error():
    api = authenticated(FakeSession(FakeResponse(body={"nodes": []})))

    with pytest.raises(ReadError, match="no node information"):
        asyncio.run(api.async_get_temperature("abc"))


@pytest.mark.parametrize("reported", ["19.5", None, True, {"value": 19.5}, float("inf"), float("nan")])
def test_non_numeric_temperature_is_read_error(reported):
    api = authenticated(FakeSession(FakeResponse(body=node_body(reported))))

    with pytest.raises(ReadError) as exc:
        asyncio.run(api.async_get_temperature("abc"))

    assert exc.value.operation == "read_temperature"


def test_missing_temperature_attribute_is_read_error():
    api = authenticated(FakeSession(FakeResponse(body={"nodes": [{"id": "abc", "attributes": {}}]})))

    with pytest.raises(ReadError):
        asyncio.run(api.async_get_temperature("abc"))


def test_undecodable_body_is_read_error():
    api = authenticated(FakeSession(FakeResponse(body="<html>oops</html>")))

    with pytest.raises(ReadError, match="undecodable"):
        asyncio.run(api.async_get_temperature("abc"))


def test_http_error_status_is_read_error():
    api = authenticated(FakeSession(FakeResponse(status=401, body={"error": "expired"})))

    with pytest.raises(ReadError, match="401"):
        asyncio.run(api.async_get_temperature("abc"))


def test_network_failure_is_read_error():
    api = authenticated(FakeSession(aiohttp.ClientConnectionError("connection reset")))

    with pytest.raises(ReadError):
        asyncio.run(api.async_get_temperature("abc"))


def test_boost_heating_puts_boost_request():
    session = FakeSession(FakeResponse(body={"nodes": []}))
    api = authenticated(session, CountingAuthenticator(token="tok-1"))

    asyncio.run(api.async_boost_heating("abc", 30, 21))

    call = session.calls[0]
    assert call.method == "PUT"
    assert call.url == f"{NODE_ENDPOINT}abc"
    assert call.headers["Content-Type"] == HIVE_CONTENT_TYPE
    assert call.headers["Authorization"] == "Bearer tok-1"
    assert call.json_body == {
        "nodes": [
            {
                "attributes": {
                    "activeHeatCoolMode": {"targetValue": "BOOST"},
                    "scheduleLockDuration": {"targetValue": 30},
                    "targetHeatTemperature": {"targetValue": 21},
                }
            }
        ]
    }


def test_boost_error_status_is_action_error():
    api = authenticated(FakeSession(FakeResponse(status=500, body="internal")))

    with pytest.raises(ActionError) as exc:
        asyncio.run(api.async_boost_heating("abc", 30, 21))

    assert exc.value.operation == "trigger_boost"


def test_boost_network_failure_is_action_error():
    api = authenticated(FakeSession(asyncio.TimeoutError()))

    with pytest.raises(ActionError):
        asyncio.run(api.async_boost_heating("abc", 30, 21))


def test_authenticate_times_out():
    release = threading.Event()

    def stuck_login(*args):
        release.wait(5)
        return "late-token"

    api = HiveApi(
        session=FakeSession(),
        username="user",
        password="secret",
        pool_id="eu-west-1_pool",
        client_id="client",
        authenticator=stuck_login,
        timeout=0.01,
    )

    async def scenario():
        try:
            await api.async_authenticate()
        finally:
            release.set()

    with pytest.raises(AuthError, match="timed out") as exc:
        asyncio.run(scenario())

    assert exc.value.operation == "authenticate"
    assert not api.has_token


def test_body_that_is_not_utf8_is_read_error():
    api = authenticated(FakeSession(FakeResponse(body=b"\xff\xfe{")))

    with pytest.raises(ReadError, match="undecodable") as exc:
        asyncio.run(api.async_get_temperature("abc"))

    assert exc.value.operation == "read_temperature"


def test_boost_reply_that_is_not_utf8_is_action_error():
    api = authenticated(FakeSession(FakeResponse(body=b"\xff\xfe{")))

    with pytest.raises(ActionError):
        asyncio.run(api.async_boost_heating("abc", 30, 21))


def test_node_extras_do_not_affect_temperature():
    body = '{"nodes": [{"id": "abc", "lastSeen": Infinity, "attributes": {"temperature": {"reportedValue": 19.5}}}]}'
    api = authenticated(FakeSession(FakeResponse(body=body)))

    assert asyncio.run(api.async_get_temperature("abc")) == 19.5
