"""Integration tests for the CLI using Typer's CliRunner."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from modsync import __version__
from modsync.backends.dummy import DummyBackend
from modsync.catalog.store import CatalogStore
from modsync.cli import app
from modsync.orchestrator import SyncOrchestrator
from modsync.translation.cache import TranslationCacheStore
from modsync.translation.client import TranslationClient
from modsync.translation.memory import MemoryTranslationCache
from modsync.translation.rate_limit import RateLimiter
from modsync.translation.tiers import MemoryTier
from tests.conftest import FakeCatalogClient, FakeLocalSource, make_item

runner = CliRunner()


@pytest.fixture
def env(tmp_path):
    return {"MODSYNC_DATA_DIR": str(tmp_path), "DEEPL_API_KEY": "", "STEAM_API_KEY": ""}


@pytest.fixture
def make_orchestrator(tmp_path):
    """Build an orchestrator over fakes, persisting to tmp_path/catalog.db."""

    def factory(items=(), ids=None, local_error=None):
        translator = TranslationClient(
            DummyBackend(),
            RateLimiter(1000, 1000, 0),
            [MemoryTier(MemoryTranslationCache())],
        )
        return SyncOrchestrator(
            FakeCatalogClient({i.id: i for i in items}),
            FakeLocalSource(ids if ids is not None else [i.id for i in items], local_error),
            CatalogStore(tmp_path / "catalog.db"),
            translator,
        )

    return factory


def _invoke(args, orch, env):
    with patch("modsync.cli.build_orchestrator", return_value=orch):
        return runner.invoke(app, args, env=env)


class TestCLISync:
    def test_sync_translates_and_stores(self, tmp_path, env, make_orchestrator):
        orch = make_orchestrator([make_item("1", "更好的武器"), make_item("2", "Guns")])
        result = _invoke(["sync"], orch, env)

        assert result.exit_code == 0, result.output
        assert "Sync Summary" in result.output
        store = CatalogStore(tmp_path / "catalog.db")
        try:
            assert store.get("1").display_title == "[EN] 更好的武器"
            assert store.get("2").translation is None
        finally:
            store.close()

    def test_sync_with_report(self, tmp_path, env, make_orchestrator):
        orch = make_orchestrator([make_item("1", "무기")])
        report = tmp_path / "report.json"
        result = _invoke(["sync", "--report", str(report)], orch, env)

        assert result.exit_code == 0, result.output
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["synced_count"] == 1
        assert data["translated_count"] == 1
        assert data["synced_ids"] == ["1"]

    def test_sync_lists_item_errors(self, env, make_orchestrator):
        orch = make_orchestrator([make_item("1")], ids=["1", "2"])
        result = _invoke(["sync"], orch, env)
        assert result.exit_code == 0
        assert "remote catalog error" in result.output

    def test_sync_fails_when_catalog_unavailable(self, env, make_orchestrator):
        orch = make_orchestrator(local_error=FileNotFoundError("no workshop folder"))
        result = _invoke(["sync"], orch, env)
        assert result.exit_code == 1
        assert "Sync failed" in result.output

    def test_update_check(self, tmp_path, env, make_orchestrator):
        store = CatalogStore(tmp_path / "catalog.db")
        store.save(make_item("5", "Old"))
        store.close()
        orch = make_orchestrator([make_item("5", "New")], ids=[])

        result = _invoke(["update-check"], orch, env)

        assert result.exit_code == 0, result.output
        store = CatalogStore(tmp_path / "catalog.db")
        try:
            assert store.get("5").title == "New"
        finally:
            store.close()


class TestCLIQueries:
    def _seed(self, tmp_path):
        store = CatalogStore(tmp_path / "catalog.db")
        store.save(make_item("1", "Weapon Pack", "Adds guns", creator="alice"))
        store.save(make_item("2", "무기"))
        store.close()

    def test_show(self, tmp_path, env, make_orchestrator):
        self._seed(tmp_path)
        result = _invoke(["show", "1"], make_orchestrator(), env)
        assert result.exit_code == 0, result.output
        assert "Weapon Pack" in result.output
        assert "Adds guns" in result.output

    def test_show_fetches_unknown_item(self, env, make_orchestrator):
        orch = make_orchestrator([make_item("9", "무기")], ids=[])
        result = _invoke(["show", "9"], orch, env)
        assert result.exit_code == 0, result.output
        assert "[EN] 무기" in result.output

    def test_show_without_translation(self, env, make_orchestrator):
        orch = make_orchestrator([make_item("9", "무기")], ids=[])
        result = _invoke(["show", "9", "--no-translation"], orch, env)
        assert result.exit_code == 0
        assert "[EN]" not in result.output

    def test_show_not_found(self, env, make_orchestrator):
        result = _invoke(["show", "404"], make_orchestrator(), env)
        assert result.exit_code == 1
        assert "Mod not found" in result.output

    def test_list(self, tmp_path, env, make_orchestrator):
        self._seed(tmp_path)
        result = _invoke(["list"], make_orchestrator(), env)
        assert result.exit_code == 0
        assert "Weapon Pack" in result.output
        assert "무기" in result.output

    def test_list_empty(self, env, make_orchestrator):
        result = _invoke(["list"], make_orchestrator(), env)
        assert result.exit_code == 0
        assert "empty" in result.output

    def test_search(self, tmp_path, env, make_orchestrator):
        self._seed(tmp_path)
        result = _invoke(["search", "weapon"], make_orchestrator(), env)
        assert result.exit_code == 0
        assert "Weapon Pack" in result.output

    def test_search_no_results(self, env, make_orchestrator):
        result = _invoke(["search", "zzz"], make_orchestrator(), env)
        assert result.exit_code == 0
        assert "No mods matching" in result.output

    def test_refresh(self, tmp_path, env, make_orchestrator):
        self._seed(tmp_path)
        result = _invoke(["refresh", "--lang", "ko"], make_orchestrator(), env)
        assert result.exit_code == 0, result.output
        assert "Refreshed 1 mods" in result.output

    def test_stats(self, tmp_path, env, make_orchestrator):
        self._seed(tmp_path)
        result = _invoke(["stats"], make_orchestrator(), env)
        assert result.exit_code == 0
        assert "Total mods" in result.output
        assert "ko" in result.output


class TestCLICache:
    def _seed(self, tmp_path):
        cache = TranslationCacheStore(tmp_path / "cache.db")
        cache.put("무기", "Weapon", "auto", "en", 3600)
        cache.put("검", "Sword", "auto", "en", 3600)
        cache.close()

    def test_cache_info(self, tmp_path, env):
        self._seed(tmp_path)
        result = runner.invoke(app, ["cache-info"], env=env)
        assert result.exit_code == 0
        assert "Cached translations: 2" in result.output

    def test_cache_clear(self, tmp_path, env):
        self._seed(tmp_path)
        result = runner.invoke(app, ["cache-clear"], env=env)
        assert result.exit_code == 0
        assert "Cleared 2" in result.output

    def test_cache_purge(self, tmp_path, env):
        self._seed(tmp_path)
        result = runner.invoke(app, ["cache-purge"], env=env)
        assert result.exit_code == 0
        assert "Purged 0" in result.output


class TestCLIGlobal:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_config_file(self, tmp_path, env):
        result = runner.invoke(
            app, ["--config", str(tmp_path / "missing.toml"), "cache-info"], env=env,
        )
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_invalid_env_setting(self, env):
        result = runner.invoke(
            app, ["cache-info"], env={**env, "TRANSLATION_MAX_PER_SECOND": "lots"},
        )
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_config_file(self, tmp_path, env):
        data_dir = tmp_path / "elsewhere"
        config = tmp_path / "modsync.toml"
        config.write_text(f'[modsync]\ndata_dir = "{data_dir.as_posix()}"\n')
        env = {k: v for k, v in env.items() if k != "MODSYNC_DATA_DIR"}
        env["MODSYNC_DATA_DIR"] = ""

        result = runner.invoke(app, ["--config", str(config), "cache-info"], env=env)

        assert result.exit_code == 0, result.output
        assert (data_dir / "cache.db").exists()
