"""Unit tests for config settings and validation."""

from dataclasses import dataclass
from typing import ClassVar

import pytest

from fluxstore.config.settings import EnvSettingsLoader, FluxStoreSettings, Settings
from fluxstore.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)


@dataclass
class WorkerSettings(Settings):
    _prefix: ClassVar[str] = "WORKER"

    queue: str
    concurrency: int = 4
    ratio: float = 0.5
    dry_run: bool = False


# ---------------------------------------------------------------------------
# EnvSettingsLoader
# ---------------------------------------------------------------------------


class TestEnvSettingsLoader:
    def test_coerces_declared_types(self) -> None:
        settings = EnvSettingsLoader(
            {"WORKER_QUEUE": "replay", "WORKER_CONCURRENCY": "8", "WORKER_RATIO": "0.25", "WORKER_DRY_RUN": "yes"}
        ).load(WorkerSettings)
        assert settings == WorkerSettings(queue="replay", concurrency=8, ratio=0.25, dry_run=True)

    def test_bool_values(self) -> None:
        for raw, expected in (("true", True), ("1", True), ("on", True), ("off", False), ("no", False)):
            settings = EnvSettingsLoader({"WORKER_QUEUE": "q", "WORKER_DRY_RUN": raw}).load(WorkerSettings)
            assert settings.dry_run is expected

    def test_defaults_kept_when_absent(self) -> None:
        settings = EnvSettingsLoader({"WORKER_QUEUE": "q"}).load(WorkerSettings)
        assert (settings.concurrency, settings.ratio, settings.dry_run) == (4, 0.5, False)

    def test_missing_required(self) -> None:
        with pytest.raises(MissingRequiredSettingError) as exc_info:
            EnvSettingsLoader({}).load(WorkerSettings)
        assert exc_info.value.setting_name == "WORKER_QUEUE"

    def test_uncoercible_value(self) -> None:
        with pytest.raises(InvalidSettingValueError) as exc_info:
            EnvSettingsLoader({"WORKER_QUEUE": "q", "WORKER_CONCURRENCY": "many"}).load(WorkerSettings)
        assert exc_info.value.setting_name == "WORKER_CONCURRENCY"
        assert exc_info.value.value == "many"

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WORKER_QUEUE", "from-env")
        assert EnvSettingsLoader().load(WorkerSettings).queue == "from-env"


# ---------------------------------------------------------------------------
# FluxStoreSettings
# ---------------------------------------------------------------------------


class TestFluxStoreSettings:
    def test_defaults(self) -> None:
        settings = EnvSettingsLoader({}).load(FluxStoreSettings)
        assert settings.snapshot_frequency == 50
        assert settings.replay_batch_size == 5000
        assert settings.database_url.startswith("sqlite+aiosqlite://")
        assert settings.master_keys == []
        assert settings.app is None

    def test_from_environment(self) -> None:
        settings = EnvSettingsLoader(
            {
                "FLUXSTORE_DATABASE_URL": "postgresql+asyncpg://db/events",
                "FLUXSTORE_SNAPSHOT_FREQUENCY": "10",
                "FLUXSTORE_REPLAY_BATCH_SIZE": "250",
                "FLUXSTORE_MASTER_KEY": "new-key, old-key,",
                "FLUXSTORE_LOG_LEVEL": "debug",
                "FLUXSTORE_APP": "myapp.bootstrap:projections",
            }
        ).load(FluxStoreSettings)
        assert settings.database_url == "postgresql+asyncpg://db/events"
        assert (settings.snapshot_frequency, settings.replay_batch_size) == (10, 250)
        assert settings.master_keys == ["new-key", "old-key"]
        assert settings.log_level == "debug"
        assert settings.app == "myapp.bootstrap:projections"

    @pytest.mark.parametrize(
        ("env", "setting"),
        [
            ({"FLUXSTORE_SNAPSHOT_FREQUENCY": "0"}, "snapshot_frequency"),
            ({"FLUXSTORE_REPLAY_BATCH_SIZE": "-5"}, "replay_batch_size"),
            ({"FLUXSTORE_STREAM_PAGE_SIZE": "0"}, "stream_page_size"),
            ({"FLUXSTORE_LOG_LEVEL": "chatty"}, "log_level"),
            ({"FLUXSTORE_APP": "myapp.bootstrap"}, "app"),
        ],
    )
    def test_invalid_values(self, env: dict[str, str], setting: str) -> None:
        with pytest.raises(InvalidSettingValueError) as exc_info:
            EnvSettingsLoader(env).load(FluxStoreSettings)
        assert exc_info.value.setting_name == setting
        assert exc_info.value.to_dict()["code"] == "invalid_setting_value"

    def test_direct_construction_is_validated(self) -> None:
        with pytest.raises(ConfigError):
            FluxStoreSettings(snapshot_frequency=0)
