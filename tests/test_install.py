"""Tests for the checkout setup helpers in install.py."""

import importlib.util
from pathlib import Path

import pytest

_INSTALL_PY = Path(__file__).resolve().parents[1] / "install.py"


@pytest.fixture(scope="module")
def install():
    spec = importlib.util.spec_from_file_location("lumen_install", _INSTALL_PY)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def checkout(tmp_path):
    (tmp_path / "config.example.yaml").write_text("data_dir: ./data\nlog_level: INFO\n", encoding="utf-8")
    (tmp_path / ".env.example").write_text("JWT_SECRET=change-me\nGOOGLE_API_KEY=\n", encoding="utf-8")
    return tmp_path


class TestSeedConfigFiles:
    def test_creates_missing_files(self, install, checkout):
        created = install.seed_config_files(checkout)

        assert created == ["config.yaml", ".env"]
        assert (checkout / "config.yaml").read_text(encoding="utf-8").startswith("data_dir: ./data")
        assert (checkout / ".env").read_text(encoding="utf-8").startswith("JWT_SECRET=change-me")

    def test_existing_files_are_kept(self, install, checkout):
        (checkout / ".env").write_text("JWT_SECRET=real\n", encoding="utf-8")

        created = install.seed_config_files(checkout)

        assert created == ["config.yaml"]
        assert (checkout / ".env").read_text(encoding="utf-8") == "JWT_SECRET=real\n"

    def test_missing_example_is_skipped(self, install, tmp_path):
        assert install.seed_config_files(tmp_path) == []
        assert not (tmp_path / "config.yaml").exists()


class TestDataDir:
    def test_defaults_without_config(self, install, tmp_path):
        data_dir = install.ensure_data_dir(tmp_path)

        assert data_dir == tmp_path / "data"
        assert (data_dir / ".gitkeep").exists()

    def test_follows_config(self, install, tmp_path):
        (tmp_path / "config.yaml").write_text('server:\n  port: 8000\ndata_dir: "./var/lumen"\n', encoding="utf-8")

        data_dir = install.ensure_data_dir(tmp_path)

        assert data_dir == tmp_path / "var" / "lumen"
        assert data_dir.is_dir()

    def test_env_reference_falls_back(self, install, tmp_path):
        (tmp_path / "config.yaml").write_text("data_dir: ${LUMEN_DATA}\n", encoding="utf-8")

        assert install.resolve_data_dir(tmp_path) == tmp_path / "data"

    def test_idempotent(self, install, tmp_path):
        install.ensure_data_dir(tmp_path)

        assert install.ensure_data_dir(tmp_path) == tmp_path / "data"


class TestPendingEnvSettings:
    def test_fresh_example_needs_secret_and_backend_key(self, install, checkout):
        install.seed_config_files(checkout)

        assert install.pending_env_settings(checkout / ".env") == [
            "JWT_SECRET",
            "GOOGLE_API_KEY or ANTHROPIC_API_KEY",
        ]

    def test_complete_env(self, install, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text('# keys\nJWT_SECRET="s3cret"\nANTHROPIC_API_KEY=sk-test\n', encoding="utf-8")

        assert install.pending_env_settings(env_file) == []

    def test_missing_env_file(self, install, tmp_path):
        assert "JWT_SECRET" in install.pending_env_settings(tmp_path / ".env")


class TestConfigCheck:
    def test_runs_cli_in_checkout(self, install, tmp_path, monkeypatch):
        calls = []

        class Completed:
            returncode = 1

        def fake_run(cmd, cwd):
            calls.append((cmd, cwd))
            return Completed()

        monkeypatch.setattr(install.subprocess, "run", fake_run)

        assert install.run_config_check(Path("/venv/bin/python"), tmp_path) is False
        assert calls == [([str(Path("/venv/bin/python")), "-m", "lumen_assistant", "config-check"], tmp_path)]
