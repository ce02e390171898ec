"""Tests for scripts/seed_centroids.py and the shared credential loader."""

import sys
from unittest.mock import MagicMock, patch

import pytest

# Mock Streamlit before importing modules
sys.modules.setdefault("streamlit", MagicMock())
sys.modules["libsql_experimental"] = MagicMock()

import _credentials
from errors import SeedError
from scripts import seed_centroids as seed_script

CREDS = {"TURSO_DATABASE_URL": "libsql://test.turso.io", "TURSO_AUTH_TOKEN": "token"}


class TestLoadCredentials:
    """Tests for load_credentials() source priority."""

    @pytest.fixture(autouse=True)
    def isolated_root(self, tmp_path, monkeypatch):
        monkeypatch.setattr(_credentials, "PROJECT_ROOT", tmp_path)
        monkeypatch.delenv("TURSO_DATABASE_URL", raising=False)
        monkeypatch.delenv("TURSO_AUTH_TOKEN", raising=False)
        return tmp_path

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("TURSO_DATABASE_URL", "libsql://env.turso.io")
        monkeypatch.setenv("TURSO_AUTH_TOKEN", "env-token")
        assert _credentials.load_credentials() == {
            "TURSO_DATABASE_URL": "libsql://env.turso.io",
            "TURSO_AUTH_TOKEN": "env-token",
        }

    def test_secrets_toml(self, isolated_root):
        secrets_dir = isolated_root / ".streamlit"
        secrets_dir.mkdir()
        (secrets_dir / "secrets.toml").write_text(
            'TURSO_DATABASE_URL = "libsql://file.turso.io"\nTURSO_AUTH_TOKEN = "file-token"\n'
        )
        assert _credentials.load_credentials()["TURSO_DATABASE_URL"] == "libsql://file.turso.io"

    def test_missing(self):
        with patch.dict(sys.modules, {"streamlit": MagicMock(secrets={})}):
            with pytest.raises(ValueError, match="TURSO_DATABASE_URL"):
                _credentials.load_credentials()


class TestSeedScriptMain:
    """Tests for the seed script entry point."""

    @pytest.fixture
    def db(self, monkeypatch):
        db = MagicMock()
        db.count_zip_centroids.return_value = 41000
        db.count_city_centroids.return_value = 29000
        monkeypatch.setattr(seed_script, "TursoDatabase", MagicMock(return_value=db))
        monkeypatch.setattr(_credentials, "load_credentials", lambda: dict(CREDS))
        return db

    def test_seeds(self, db, monkeypatch, capsys):
        run_seed = MagicMock(return_value={"status": "seeded", "zip_count": 41000, "city_count": 29000})
        monkeypatch.setattr(seed_script, "run_seed", run_seed)
        monkeypatch.setattr(sys, "argv", ["seed_centroids.py", "--force", "--dataset-url", "https://example.com/c.json"])

        seed_script.main()

        db.init_schema.assert_called_once()
        run_seed.assert_called_once_with(db, force=True, dataset_url="https://example.com/c.json")
        out = capsys.readouterr().out
        assert "Upserted 41000 ZIP centroids and 29000 city centroids" in out

    def test_already_seeded(self, db, monkeypatch, capsys):
        monkeypatch.setattr(seed_script, "run_seed",
                            MagicMock(return_value={"status": "skipped", "zip_count": 0, "city_count": 29000}))
        monkeypatch.setattr(sys, "argv", ["seed_centroids.py"])

        seed_script.main()

        assert "Skipping seed" in capsys.readouterr().out

    def test_seed_error_exits(self, db, monkeypatch):
        monkeypatch.setattr(seed_script, "run_seed", MagicMock(side_effect=SeedError("HTTP 404")))
        monkeypatch.setattr(sys, "argv", ["seed_centroids.py"])

        with pytest.raises(SystemExit) as exc_info:
            seed_script.main()
        assert exc_info.value.code == 1

    def test_missing_credentials_exit(self, monkeypatch):
        def missing():
            raise ValueError("Missing required credential: TURSO_AUTH_TOKEN")

        monkeypatch.setattr(_credentials, "load_credentials", missing)
        monkeypatch.setattr(sys, "argv", ["seed_centroids.py"])

        with pytest.raises(SystemExit) as exc_info:
            seed_script.main()
        assert exc_info.value.code == 1
