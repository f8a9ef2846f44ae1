"""Application composition root and entry points shared by the API and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from syncnexus.adapters.evolution import EvolutionGatewayClient, decode_webhook
from syncnexus.adapters.sqlalchemy import SqlAlchemyCanonicalStore, shutdown, startup
from syncnexus.config import (
    MissingConfigurationError,
    get_default_instance_name,
    get_gateway_config,
    get_sync_config,
)
from syncnexus.domain.errors import InvalidRequestError
from syncnexus.domain.reconciliation import (
    fetch_group_metadata,
    handle_live_event,
    harvest_group_messages,
    inject_members,
    rescue_group_participants,
    run_full_sync,
    sync_group_metadata,
    verify_group_sync,
)
from syncnexus.worker import SyncWorker

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from sqlalchemy.engine import Engine

    from syncnexus.config import SyncConfig
    from syncnexus.domain.ports import CanonicalStore, GatewayClient, GatewayGroup
    from syncnexus.domain.reconciliation import (
        BatchResult,
        EventOutcome,
        HarvestResult,
        InjectionResult,
        MemberInjection,
        MetadataSyncResult,
        ProgressCallback,
        RescueResult,
        VerificationResult,
    )
    from syncnexus.worker import SyncJob

type GatewayFactory = Callable[[], GatewayClient]

log = getLogger(__name__)


def _default_gateway_factory() -> GatewayClient:
    return EvolutionGatewayClient(config=get_gateway_config())


@dataclass(slots=True)
class Runtime:
    """Process-wide resources, acquired once at start and released at shutdown.

    The gateway client is built on first use so that a missing gateway
    configuration only fails the calls that actually need the gateway.
    """

    engine: Engine
    store: CanonicalStore
    sync_config: SyncConfig
    default_instance: str
    worker: SyncWorker = field(default_factory=SyncWorker)
    gateway_factory: GatewayFactory = _default_gateway_factory
    _gateway: GatewayClient | None = field(default=None, init=False, repr=False)

    @property
    def gateway(self) -> GatewayClient:
        if self._gateway is None:
            self._gateway = self.gateway_factory()
        return self._gateway

    def instance_or_default(self, instance_name: str | None) -> str:
        return instance_name or self.default_instance

    async def aclose(self) -> None:
        if self._gateway is not None:
            await self._gateway.aclose()
            self._gateway = None
        shutdown(self.engine)


def build_runtime(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    gateway_factory: GatewayFactory | None = None,
    sync_config: SyncConfig | None = None,
) -> Runtime:
    resolved_engine = startup(engine=engine, database_uri=database_uri)
    return Runtime(
        engine=resolved_engine,
        store=SqlAlchemyCanonicalStore(resolved_engine),
        sync_config=sync_config or get_sync_config(),
        default_instance=get_default_instance_name(),
        gateway_factory=gateway_factory or _default_gateway_factory,
    )


def _require_group_id(group_id: str | None) -> str:
    if group_id is None or not group_id.strip():
        raise InvalidRequestError("groupJid is required")
    return group_id.strip()


async def sync_groups(runtime: Runtime, *, instance_name: str | None = None) -> MetadataSyncResult:
    return await sync_group_metadata(
        gateway=runtime.gateway,
        store=runtime.store,
        instance_name=runtime.instance_or_default(instance_name),
    )


async def rescue_group(
    runtime: Runtime, group_id: str | None, *, instance_name: str | None = None
) -> RescueResult:
    return await rescue_group_participants(
        gateway=runtime.gateway,
        store=runtime.store,
        instance_name=runtime.instance_or_default(instance_name),
        group_id=_require_group_id(group_id),
    )


async def full_sync(
    runtime: Runtime,
    *,
    instance_name: str | None = None,
    groups: Sequence[GatewayGroup] | None = None,
    on_progress: ProgressCallback | None = None,
) -> BatchResult:
    """Run the whole batch in the foreground."""

    resolved_instance = runtime.instance_or_default(instance_name)
    if groups is None:
        groups = await fetch_group_metadata(runtime.gateway, resolved_instance)
    return await run_full_sync(
        gateway=runtime.gateway,
        store=runtime.store,
        instance_name=resolved_instance,
        groups=groups,
        pacing_seconds=runtime.sync_config.group_pacing_seconds,
        on_progress=on_progress,
    )


async def start_full_sync(
    runtime: Runtime, *, instance_name: str | None = None
) -> tuple[SyncJob, int]:
    """Fetch the group list, then hand the batch to the background worker.

    Returns as soon as the job is submitted, together with the group count.
    """

    resolved_instance = runtime.instance_or_default(instance_name)
    log.info(f"Starting mass sync for {resolved_instance}")
    groups = await fetch_group_metadata(runtime.gateway, resolved_instance)

    async def run(job: SyncJob) -> BatchResult:
        def on_progress(index: int, total: int, _group: GatewayGroup) -> None:
            job.report(index, total)

        return await full_sync(
            runtime, instance_name=resolved_instance, groups=groups, on_progress=on_progress
        )

    job = runtime.worker.submit(f"full-sync:{resolved_instance}", run)
    job.report(0, len(groups))
    return job, len(groups)


async def harvest_messages(
    runtime: Runtime,
    group_id: str | None,
    *,
    limit: int | None = None,
    offset: int = 0,
    instance_name: str | None = None,
) -> HarvestResult:
    resolved_limit = runtime.sync_config.message_limit if limit is None else limit
    if resolved_limit <= 0:
        raise InvalidRequestError("limit must be positive")
    if offset < 0:
        raise InvalidRequestError("offset must not be negative")
    return await harvest_group_messages(
        gateway=runtime.gateway,
        store=runtime.store,
        instance_name=runtime.instance_or_default(instance_name),
        group_id=_require_group_id(group_id),
        limit=resolved_limit,
        offset=offset,
    )


def receive_event(runtime: Runtime, payload: Mapping[str, object]) -> EventOutcome:
    return handle_live_event(runtime.store, decode_webhook(payload))


def inject(
    runtime: Runtime,
    members: Sequence[MemberInjection],
    *,
    group_id: str | None = None,
) -> InjectionResult:
    target = group_id or runtime.sync_config.injection_group_id
    if not target:
        raise MissingConfigurationError("Missing configuration for: INJECTION_GROUP_ID")
    return inject_members(runtime.store, target, members)


async def verify(
    runtime: Runtime, group_id: str | None, *, instance_name: str | None = None
) -> VerificationResult:
    return await verify_group_sync(
        gateway=runtime.gateway,
        store=runtime.store,
        instance_name=runtime.instance_or_default(instance_name),
        group_id=_require_group_id(group_id),
    )
