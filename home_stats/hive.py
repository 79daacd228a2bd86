from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import aiohttp
import boto3
from botocore import UNSIGNED
from botocore.config import Config as BotoConfig
from pycognito.aws_srp import AWSSRP

from .const import (
    AUTH_ENDPOINT,
    AUTH_REGION,
    HIVE_CLIENT_HEADER,
    HIVE_CONTENT_TYPE,
    NODE_ENDPOINT,
    REQUEST_TIMEOUT,
)
from .exceptions import ActionError, AuthError, HomeStatsError, ReadError

_LOGGER = logging.getLogger(__name__)

# (username, password, pool_id, client_id) -> id token
Authenticator = Callable[[str, str, str, str], Optional[str]]


def cognito_srp_login(username: str, password: str, pool_id: str, client_id: str) -> str | None:
    """Run the Cognito USER_SRP_AUTH / PASSWORD_VERIFIER exchange and return the IdToken.

    Blocking (boto3), call it from an executor.
    """
    client = boto3.client(
        "cognito-idp",
        region_name=AUTH_REGION,
        endpoint_url=AUTH_ENDPOINT,
        config=BotoConfig(signature_version=UNSIGNED),
    )
    srp = AWSSRP(
        username=username,
        password=password,
        pool_id=pool_id,
        client_id=client_id,
        client=client,
    )
    tokens = srp.authenticate_user()
    result = tokens.get("AuthenticationResult") or {}
    return result.get("IdToken")


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


@dataclass
class NodeAttributes:
    temperature: float | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "NodeAttributes":
        if not isinstance(data, dict):
            return cls()
        temp = data.get("temperature")
        reported = temp.get("reportedValue") if isinstance(temp, dict) else None
        return cls(temperature=_as_number(reported), raw=data)


@dataclass
class Node:
    id: str
    attributes: NodeAttributes = field(default_factory=NodeAttributes)

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "Node":
        return cls(
            id=str(item.get("id") or ""),
            attributes=NodeAttributes.from_dict(item.get("attributes")),
        )


class HiveApi:
    """Hive (Omnia) thermostat client: Cognito auth, node reads and boost requests."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        username: str,
        password: str,
        pool_id: str,
        client_id: str,
        *,
        node_endpoint: str = NODE_ENDPOINT,
        authenticator: Authenticator | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._session = session
        self._username = username
        self._password = password
        self._pool_id = pool_id
        self._client_id = client_id
        self._node_endpoint = node_endpoint
        self._authenticator = authenticator or cognito_srp_login
        self._timeout = timeout

        self._token: str | None = None

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    # -----------------------------
    # Auth
    # -----------------------------

    async def async_authenticate(self) -> None:
        """Obtain a fresh IdToken. The held token is only replaced on success."""
        loop = asyncio.get_running_loop()

        _LOGGER.debug("Hive AUTH user=%s pool=%s", self._username, self._pool_id)

        try:
            token = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    self._authenticator,
                    self._username,
                    self._password,
                    self._pool_id,
                    self._client_id,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as err:
            raise AuthError(
                f"auth timed out after {self._timeout}s", operation="authenticate"
            ) from err
        except Exception as err:
            raise AuthError(f"error during auth exchange: {err}", operation="authenticate") from err

        if not token:
            raise AuthError("empty id token", operation="authenticate")

        self._token = str(token)
        _LOGGER.debug("Hive auth OK")

    # -----------------------------
    # REST helper
    # -----------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": HIVE_CONTENT_TYPE,
            "Accept": HIVE_CONTENT_TYPE,
            "X-Omnia-Client": HIVE_CLIENT_HEADER,
            "Authorization": f"Bearer {self._token}",
        }

    async def _request(
        self,
        method: str,
        node_id: str,
        *,
        operation: str,
        error_cls: type[HomeStatsError],
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> str:
        if not self._token:
            raise AuthError(f"no token held, authenticate before {operation}", operation=operation)

        url = f"{self._node_endpoint}{node_id}"
        data = json.dumps(json_body) if json_body is not None else None

        _LOGGER.debug("Hive REST REQ %s %s params=%s body=%s", method, url, params, data)

        try:
            async with self._session.request(
                method,
                url,
                params=params,
                data=data,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise error_cls(f"{method} {url} failed: {err!r}", operation=operation) from err
        except UnicodeDecodeError as err:
            raise error_cls(f"{method} {url}: undecodable body: {err}", operation=operation) from err

        _LOGGER.debug("Hive REST RESP %s %s body=%s", status, url, text)

        if status >= 400:
            raise error_cls(f"{method} {url} failed {status}: {text}", operation=operation)

        return text

    # -----------------------------
    # Nodes
    # -----------------------------

    async def async_get_nodes(self, node_id: str) -> list[Node]:
        text = await self._request(
            "GET",
            node_id,
            operation="read_temperature",
            error_cls=ReadError,
            params={"fields": "attributes.temperature"},
        )

        try:
            data = json.loads(text) if text else {}
        except ValueError as err:
            raise ReadError(f"node {node_id}: undecodable body", operation="read_temperature") from err

        nodes_raw = data.get("nodes") if isinstance(data, dict) else None
        if nodes_raw is None:
            nodes_raw = []
        if not isinstance(nodes_raw, list):
            raise ReadError(f"node {node_id}: unexpected payload {data}", operation="read_temperature")

        return [Node.from_dict(item) for item in nodes_raw if isinstance(item, dict)]

    async def async_get_temperature(self, node_id: str) -> float:
        """Current temperature of a node. If several nodes come back the first one is used."""
        nodes = await self.async_get_nodes(node_id)
        if not nodes:
            raise ReadError(f"no node information returned for {node_id}", operation="read_temperature")

        temperature = nodes[0].attributes.temperature
        if temperature is None:
            raw = nodes[0].attributes.raw.get("temperature")
            raise ReadError(
                f"node {node_id}: temperature reportedValue is not a number ({raw})",
                operation="read_temperature",
            )

        return temperature

    async def async_boost_heating(self, node_id: str, duration: int, target_temperature: int) -> None:
        """Put the node into BOOST for ``duration`` minutes at ``target_temperature``."""
        payload = {
            "nodes": [
                {
                    "attributes": {
                        "activeHeatCoolMode": {"targetValue": "BOOST"},
                        "scheduleLockDuration": {"targetValue": duration},
                        "targetHeatTemperature": {"targetValue": target_temperature},
                    }
                }
            ]
        }

        await self._request(
            "PUT",
            node_id,
            operation="trigger_boost",
            error_cls=ActionError,
            json_body=payload,
        )
        _LOGGER.info("Hive boost requested node=%s duration=%sm target=%s", node_id, duration, target_temperature)
