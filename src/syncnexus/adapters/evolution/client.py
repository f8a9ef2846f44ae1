"""HTTP client for the Evolution API gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from syncnexus.adapters.http_resilience import ResilientClient
from syncnexus.domain.ports.gateway import GatewayClient, GatewayError

from .translator import (
    PayloadShapeError,
    translate_groups,
    translate_messages,
    translate_participants,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from syncnexus.config import GatewayConfig, ResilienceConfig
    from syncnexus.domain.ports.gateway import GatewayGroup, MessagePage, ParticipantList

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _path(endpoint: str, instance_name: str) -> str:
    return f"{endpoint}/{quote(instance_name, safe='')}"


@dataclass(slots=True)
class EvolutionGatewayClient:
    """Reads groups, participants and messages from one Evolution API deployment.

    The underlying HTTP client is created on first use and kept open until
    :meth:`aclose` so that the rate limiter spans a whole batch.
    """

    config: GatewayConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def list_groups(
        self, instance_name: str, *, include_participants: bool = False
    ) -> list[GatewayGroup]:
        params = {"getParticipants": "true" if include_participants else "false"}
        payload = await self._request_json(
            "GET", _path("group/fetchAllGroups", instance_name), params=params
        )
        try:
            return translate_groups(payload)
        except PayloadShapeError as exc:
            raise GatewayError(str(exc)) from exc

    async def list_group_participants(self, instance_name: str, group_id: str) -> ParticipantList:
        payload = await self._request_json(
            "GET",
            _path("group/participants", instance_name),
            params={"groupJid": group_id},
        )
        try:
            return translate_participants(payload)
        except PayloadShapeError as exc:
            raise GatewayError(str(exc)) from exc

    async def list_group_messages(
        self, instance_name: str, group_id: str, *, limit: int, offset: int = 0
    ) -> MessagePage:
        if limit <= 0:
            raise ValueError(f"Message page size must be positive, got {limit}")
        body: dict[str, object] = {
            "where": {"key": {"remoteJid": group_id}},
            "page": offset // limit + 1,
            "offset": limit,
        }
        payload = await self._request_json(
            "POST", _path("chat/findMessages", instance_name), json=body
        )
        try:
            return translate_messages(payload)
        except PayloadShapeError as exc:
            raise GatewayError(str(exc)) from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
    ) -> object:
        client = self._ensure_client()
        try:
            response = await client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            log.error(f"Evolution API {method} {path} failed with status {status}")
            raise GatewayError(
                f"Gateway returned {status} for {path}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            log.error(f"Evolution API {method} {path} failed: {exc}")
            raise GatewayError(f"Gateway request to {path} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"Gateway returned invalid JSON for {path}") from exc


if TYPE_CHECKING:
    from typing import cast

    _client_check: GatewayClient = EvolutionGatewayClient(config=cast("GatewayConfig", object()))
