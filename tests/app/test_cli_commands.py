from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from syncnexus.app import build_runtime
from syncnexus.domain.ports import GatewayGroup
from syncnexus.ui import cli
from tests.helpers.gateway import GROUP_ID, FakeGateway, make_message, make_participant

if TYPE_CHECKING:
    from pathlib import Path

    from syncnexus.app import Runtime
    from syncnexus.config import SyncConfig


@pytest.fixture
def fake_gateway() -> FakeGateway:
    gateway = FakeGateway(groups=[GatewayGroup(GROUP_ID, name="Board")])
    gateway.participants[GROUP_ID] = [make_participant(phone="27821234567", names=("Thandi",))]
    gateway.messages[GROUP_ID] = [make_message("MSG-1", participant="27821234567")]
    return gateway


@pytest.fixture
def captured_configs(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fake_gateway: FakeGateway
) -> list[SyncConfig]:
    configs: list[SyncConfig] = []
    database_uri = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"

    def fake_build_runtime(*, sync_config: SyncConfig) -> Runtime:
        configs.append(sync_config)
        return build_runtime(
            database_uri=database_uri,
            gateway_factory=lambda: fake_gateway,
            sync_config=sync_config,
        )

    monkeypatch.setattr(cli, "build_runtime", fake_build_runtime)
    return configs


def test_sync_groups_then_harvest(
    captured_configs: list[SyncConfig],
    fake_gateway: FakeGateway,
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level("INFO"):
        cli.main(["sync-groups"])
        cli.main(["harvest", "--group", GROUP_ID, "--limit", "5"])

    assert fake_gateway.calls == [("groups", "sa-personal"), ("messages", GROUP_ID)]
    assert fake_gateway.closed is True
    assert len(captured_configs) == 2
    messages = [record.getMessage() for record in caplog.records]
    assert "Groups synced: fetched=1, synced=1" in messages
    assert "Harvest finished: found=1, saved=1, skipped=0" in messages


def test_full_sync_pacing_override(captured_configs: list[SyncConfig]) -> None:
    cli.main(["full-sync", "--instance", "office", "--pacing", "0"])

    assert captured_configs[0].group_pacing_seconds == 0.0


def test_rescue_and_verify(
    captured_configs: list[SyncConfig], caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level("INFO"):
        cli.main(["rescue", "--group", GROUP_ID])
        cli.main(["verify", "--group", GROUP_ID])

    assert len(captured_configs) == 2
    assert f"{GROUP_ID}: gateway=1, stored=1, status=MATCHED" in [
        record.getMessage() for record in caplog.records
    ]


@pytest.mark.parametrize(
    "argv",
    [
        ["serve", "--port", "0"],
        ["full-sync", "--pacing", "-1"],
        ["harvest", "--group", GROUP_ID, "--limit", "0"],
        ["harvest", "--group", GROUP_ID, "--offset", "-5"],
    ],
)
def test_invalid_arguments_exit_with_code_2(
    captured_configs: list[SyncConfig], argv: list[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2
    assert captured_configs == []


def test_runtime_failure_exits_with_code_1(
    captured_configs: list[SyncConfig], fake_gateway: FakeGateway
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["harvest", "--group", GROUP_ID])

    assert excinfo.value.code == 1
    assert fake_gateway.closed is True
    assert len(captured_configs) == 1


def test_serve_runs_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(app: object, *, host: str, port: int) -> None:
        captured.update(app=app, host=host, port=port)

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)

    cli.main(["serve", "--port", "9000"])

    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 9000
    assert captured["app"] is not None
