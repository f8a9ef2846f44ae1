"""HTTP surface: FastAPI routes that trigger the reconciliation passes."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from syncnexus import __version__, app as services
from syncnexus.app import Runtime
from syncnexus.config import ConfigurationError
from syncnexus.domain.errors import (
    GroupNotFoundError,
    InvalidRequestError,
    NoParticipantsError,
    StoreError,
)
from syncnexus.domain.ports import GatewayError
from syncnexus.domain.reconciliation import MemberInjection

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

log = getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (GroupNotFoundError, 404),
    (InvalidRequestError, 400),
    (NoParticipantsError, 500),
    (GatewayError, 502),
    (ConfigurationError, 500),
    (StoreError, 500),
)


# --- Request models ---


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InstanceRequest(RequestModel):
    instance_name: str | None = Field(default=None, alias="instanceName")


class GroupRequest(InstanceRequest):
    group_jid: str | None = Field(default=None, alias="groupJid")


class MessagesRequest(GroupRequest):
    limit: int | None = None
    offset: int = 0


class MemberEntry(RequestModel):
    identifier: str = Field(
        validation_alias=AliasChoices("identifier", "whatsapp_id", "whatsappId")
    )
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("displayName", "display_name")
    )


class InjectRequest(RequestModel):
    members: list[MemberEntry]
    group_jid: str | None = Field(default=None, alias="groupJid")


# --- Application factory ---


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]


def create_app(
    runtime: Runtime | None = None,
    *,
    runtime_factory: Callable[[], Runtime] = services.build_runtime,
) -> FastAPI:
    """Create the FastAPI application.

    ``runtime`` is built at startup when not given; either way the worker is
    started with the app and stopped, together with the runtime, at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = runtime or runtime_factory()
        app.state.runtime = active
        active.worker.start()
        try:
            yield
        finally:
            await active.worker.stop()
            await active.aclose()

    app = FastAPI(title="SyncNexus", version=__version__, lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(  # pyright: ignore[reportUnusedFunction]
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        content = {"error": "Invalid request", "detail": str(exc)}
        return JSONResponse(status_code=400, content=content)

    for error_type, status_code in _ERROR_STATUS:
        app.add_exception_handler(error_type, _error_handler(status_code))

    # === SYNC ===

    @app.post("/api/sync/groups")
    async def sync_groups(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, body: InstanceRequest | None = None
    ) -> dict[str, Any]:
        req = body or InstanceRequest()
        result = await services.sync_groups(runtime, instance_name=req.instance_name)
        return {"success": True, "totalFetched": result.fetched, "synced": result.synced}

    @app.post("/api/sync/group-names")
    async def sync_group_names(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, body: GroupRequest
    ) -> dict[str, Any]:
        result = await services.rescue_group(
            runtime, body.group_jid, instance_name=body.instance_name
        )
        return {
            "success": True,
            "fixed": result.fixed,
            "totalScanned": result.total_scanned,
            "renamed": result.renamed,
            "skipped": result.skipped,
        }

    @app.post("/api/sync/full-sync")
    async def full_sync(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, body: InstanceRequest | None = None
    ) -> dict[str, Any]:
        req = body or InstanceRequest()
        job, count = await services.start_full_sync(runtime, instance_name=req.instance_name)
        return {
            "success": True,
            "message": f"Started syncing {count} groups in background.",
            "jobId": job.id,
        }

    @app.get("/api/sync/jobs/{job_id}")
    async def job_status(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, job_id: str
    ) -> dict[str, Any]:
        job = runtime.worker.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
        current, total = job.progress
        return {
            "jobId": job.id,
            "name": job.name,
            "state": job.state.value,
            "current": current,
            "total": total,
            "error": job.error,
        }

    @app.post("/api/sync/messages")
    async def sync_messages(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, body: MessagesRequest
    ) -> dict[str, Any]:
        result = await services.harvest_messages(
            runtime,
            body.group_jid,
            limit=body.limit,
            offset=body.offset,
            instance_name=body.instance_name,
        )
        return {
            "success": True,
            "totalFound": result.total_found,
            "saved": result.saved,
            "skipped": result.skipped,
        }

    # === WEBHOOK ===

    @app.post("/api/webhook/evolution")
    async def evolution_webhook(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, request: Request
    ) -> dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError:
            log.warning("Webhook body is not valid JSON")
            return {"received": True, "outcome": "ignored"}
        if not isinstance(payload, dict):
            return {"received": True, "outcome": "ignored"}
        outcome = await asyncio.to_thread(services.receive_event, runtime, payload)
        return {"received": True, "outcome": outcome.value}

    # === ADMIN ===

    @app.post("/api/admin/inject-members")
    def inject_members(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, body: InjectRequest
    ) -> dict[str, Any]:
        members = [
            MemberInjection(identifier=entry.identifier, display_name=entry.display_name)
            for entry in body.members
        ]
        result = services.inject(runtime, members, group_id=body.group_jid)
        return {
            "success": True,
            "processed": result.processed,
            "updatedNames": result.updated_names,
            "skipped": result.skipped,
        }

    @app.post("/api/admin/verify-group-sync")
    async def verify_group_sync(  # pyright: ignore[reportUnusedFunction]
        runtime: RuntimeDep, body: GroupRequest
    ) -> dict[str, Any]:
        result = await services.verify(runtime, body.group_jid, instance_name=body.instance_name)
        return {
            "gatewayCount": result.gateway_count,
            "storedCount": result.stored_count,
            "status": result.status.value,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        return {"status": "ok", "version": __version__}

    return app


def _error_handler(status_code: int) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
    async def handle(_request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            log.error(f"Request failed: {exc}")
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    return handle
