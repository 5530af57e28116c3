"""Unit tests for main CLI entry point (main.py).

Tests the Typer CLI application using CliRunner against a temporary
workspace. Production-mode commands talk to the in-memory hosting API.
"""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import requests
import yaml
from typer.testing import CliRunner

from src.cli import main as main_module
from src.cli.errors import InputFileError
from src.cli.main import _configure_logging, app, parse_manifest
from src.cli.models import ExitCode
from tests.helpers.fake_hosting import API_URL, OWNER, REPO, TOKEN, make_session

runner = CliRunner()

ABOUT = "src/content/pages/about.json"


def _write_config(mode: str, **extra) -> None:
    config = {
        "repository": {"owner": OWNER, "name": REPO},
        "mode": mode,
        "api_url": API_URL,
        "mirror_to_remote": False,
    }
    config.update(extra)
    with open(".cms-sync/config.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)


def _write_json(name: str, data) -> str:
    with open(name, "w", encoding="utf-8") as f:
        json.dump(data, f)
    return name


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".cms-sync").mkdir()
    return tmp_path


@pytest.fixture
def dev_workspace(workdir):
    _write_config("development")
    return workdir


@pytest.fixture
def prod_workspace(workdir, fake_api, monkeypatch):
    """Production config whose hosting client is routed to the fake API."""
    _write_config("production")
    real_build = main_module.build_storage_adapter

    def build(config, token=None, **kwargs):
        return real_build(config, token=token, session=make_session(fake_api), **kwargs)

    monkeypatch.setattr("src.cli.main.build_storage_adapter", build)
    return workdir


def _invoke(*args, token=True):
    prefix = ["--token", TOKEN] if token else []
    return runner.invoke(app, prefix + list(args))


class TestConfigureLogging:
    """Test cases for _configure_logging function."""

    def test_verbosity_0_sets_warning_level(self):
        """Verbosity 0 sets logging to WARNING level."""
        with patch('logging.getLogger') as mock_get_logger:
            mock_app_logger = MagicMock()
            mock_get_logger.return_value = mock_app_logger

            _configure_logging(0)

            mock_get_logger.assert_called_with("src")
            mock_app_logger.setLevel.assert_called_with(logging.WARNING)

    def test_verbosity_2_sets_debug_level(self):
        """Verbosity 2+ sets logging to DEBUG level."""
        with patch('logging.getLogger') as mock_get_logger:
            mock_app_logger = MagicMock()
            mock_get_logger.return_value = mock_app_logger

            _configure_logging(2)

            mock_app_logger.setLevel.assert_called_with(logging.DEBUG)

    def test_logdir_creates_log_file(self, tmp_path):
        """A log directory should receive a timestamped log file."""
        _configure_logging(1, str(tmp_path / "logs"))

        log_files = list((tmp_path / "logs").glob("cms-sync_*.log"))
        assert len(log_files) == 1


class TestParseManifest:
    """Test cases for parse_manifest function."""

    def test_parses_pages_and_globals(self):
        """parse_manifest should build a ChangeSet in manifest order."""
        changeset = parse_manifest({
            "pages": [{"id": "index", "data": {"a": 1}}, {"pageName": "about", "document": {}}],
            "globals": {"siteName": "Acme"},
        })

        assert changeset.page_ids == ["index", "about"]
        assert changeset.globals == {"siteName": "Acme"}

    def test_duplicate_page_rejected(self):
        """A page listed twice should raise InputFileError."""
        with pytest.raises(InputFileError, match="Duplicate"):
            parse_manifest({"pages": [{"id": "a", "data": {}}, {"id": "a", "data": {}}]})

    @pytest.mark.parametrize("manifest", [
        [],
        {"pages": {}},
        {"pages": ["index"]},
        {"pages": [{"id": "index"}]},
    ])
    def test_malformed_manifest(self, manifest):
        """Malformed manifests should raise InputFileError."""
        with pytest.raises(InputFileError):
            parse_manifest(manifest)


class TestWorkspaceErrors:
    """Test cases for configuration and input errors."""

    def test_missing_config(self, workdir):
        """Commands without a config file should exit 1 with a clear message."""
        result = _invoke("pages")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Configuration file not found" in result.output

    def test_invalid_config(self, workdir):
        """An invalid config file should exit 1."""
        _write_config("staging")

        result = _invoke("pages")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "mode" in result.output

    def test_missing_input_file(self, dev_workspace):
        """A missing document file should exit 1."""
        result = _invoke("save", "about", "missing.json")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Cannot use missing.json" in result.output

    def test_invalid_page_id(self, dev_workspace):
        """An unsafe page id should exit 1 without writing anything."""
        _write_json("doc.json", {})

        result = _invoke("save", "../etc", "doc.json")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Invalid page id" in result.output
        assert not (dev_workspace / "src").exists()


class TestDevelopmentCommands:
    """Test cases for commands in development mode."""

    def test_save_then_load(self, dev_workspace):
        """save should write the local file and load should print it."""
        _write_json("doc.json", {"components": [{"id": "hero"}]})

        saved = _invoke("save", "about", "doc.json")
        loaded = _invoke("load", "about")

        assert saved.exit_code == ExitCode.SUCCESS
        assert (dev_workspace / ABOUT).exists()
        assert loaded.exit_code == ExitCode.SUCCESS
        assert json.loads(loaded.stdout) == {"components": [{"id": "hero"}]}

    def test_load_missing_page(self, dev_workspace):
        """Loading a page that does not exist should exit 1."""
        result = _invoke("load", "about")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "not found" in result.output

    def test_globals_round_trip(self, dev_workspace):
        """globals-save and globals-load should round trip the document."""
        _write_json("globals.json", {"siteName": "Acme"})

        assert _invoke("globals-save", "globals.json").exit_code == ExitCode.SUCCESS
        loaded = _invoke("globals-load")

        assert json.loads(loaded.stdout) == {"siteName": "Acme"}

    def test_pages(self, dev_workspace):
        """pages should list saved pages."""
        _write_json("doc.json", {})
        _invoke("save", "about-us", "doc.json")

        result = _invoke("pages")

        assert result.exit_code == ExitCode.SUCCESS
        assert "About Us" in result.output

    def test_publish_is_noop(self, dev_workspace):
        """publish should explain that development saves are live."""
        result = _invoke("publish")

        assert result.exit_code == ExitCode.SUCCESS
        assert "nothing to publish" in result.output

    def test_drafts_then_batch(self, dev_workspace):
        """Queued drafts should be committed by batch --from-drafts and then cleared."""
        _write_json("index.json", {"components": []})
        _write_json("about.json", {"components": [{"id": "team"}]})
        assert _invoke("draft", "index", "index.json").exit_code == ExitCode.SUCCESS
        assert _invoke("draft", "about", "about.json").exit_code == ExitCode.SUCCESS

        result = _invoke("batch", "--from-drafts", "-m", "Landing pages")

        assert result.exit_code == ExitCode.SUCCESS
        assert (dev_workspace / ABOUT).exists()
        assert (dev_workspace / "src/content/pages/index.json").exists()

        again = _invoke("batch", "--from-drafts", "-m", "Again")
        assert "Nothing to commit" in again.output

    def test_batch_needs_exactly_one_source(self, dev_workspace):
        """batch should refuse both or neither of manifest and --from-drafts."""
        _write_json("manifest.json", {"pages": []})

        assert _invoke("batch", "-m", "x").exit_code == ExitCode.GENERAL_ERROR
        assert _invoke(
            "batch", "manifest.json", "--from-drafts", "-m", "x"
        ).exit_code == ExitCode.GENERAL_ERROR

    def test_cache_clear(self, dev_workspace):
        """cache-clear should report success."""
        result = _invoke("cache-clear")

        assert result.exit_code == ExitCode.SUCCESS
        assert "Cache cleared" in result.output


class TestProductionCommands:
    """Test cases for commands in production mode."""

    def test_save_status_publish(self, prod_workspace, fake_api):
        """A save should stage on the draft branch until publish merges it."""
        _write_json("doc.json", {"components": []})

        assert _invoke("save", "about", "doc.json").exit_code == ExitCode.SUCCESS
        assert fake_api.read_file("cms-draft", ABOUT) is not None
        assert fake_api.read_file("main", ABOUT) is None

        status = _invoke("status")
        assert "Unpublished changes" in status.output

        published = _invoke("publish")
        assert published.exit_code == ExitCode.SUCCESS
        assert "Published as" in published.output
        assert fake_api.read_file("main", ABOUT) is not None

    def test_missing_token_is_auth_error(self, prod_workspace):
        """Without any credential a save should exit with the auth code."""
        _write_json("doc.json", {})

        result = _invoke("save", "about", "doc.json", token=False)

        assert result.exit_code == ExitCode.AUTH_ERROR

    def test_conflict_exit_code(self, prod_workspace, fake_api):
        """A stale sha should exit with the conflict code."""
        _write_json("doc.json", {"v": 1})
        fake_api.create_branch("cms-draft")
        fake_api.seed_file("cms-draft", ABOUT, "{}")
        fake_api.before_put = lambda path: fake_api.seed_file("cms-draft", path, '{"v": 0}')

        result = _invoke("save", "about", "doc.json")

        assert result.exit_code == ExitCode.CONFLICTS
        assert "Someone else edited" in result.output

    def test_network_exit_code(self, prod_workspace, fake_api):
        """An unreachable API should exit with the network code."""
        fake_api.raise_next(requests.exceptions.ConnectionError("down"))

        result = _invoke("pages")

        assert result.exit_code == ExitCode.NETWORK_ERROR

    def test_token_never_printed(self, prod_workspace, fake_api):
        """Error output should never contain the bearer token."""
        fake_api.fail_next(500, {"message": f"Bearer {TOKEN}"})

        result = _invoke("status")

        assert TOKEN not in result.output

    def test_batch_manifest(self, prod_workspace, fake_api):
        """batch should commit every manifest entry with the given message."""
        _write_json("manifest.json", {
            "pages": [{"id": "index", "data": {}}, {"id": "about", "data": {}}],
            "globals": {"siteName": "Acme"},
        })

        result = _invoke("batch", "manifest.json", "-m", "Spring refresh")

        assert result.exit_code == ExitCode.SUCCESS
        assert "Committed 3 file(s)" in result.output
        assert fake_api.commit_messages[-3:] == ["Spring refresh"] * 3

    def test_batch_partial_failure(self, prod_workspace, fake_api):
        """A partially committed batch should exit 1 and list the failure."""
        _write_json("manifest.json", {"pages": [{"id": "index", "data": {}}, {"id": "about", "data": {}}]})
        fake_api.fail_next(500, method="PUT")

        result = _invoke("batch", "manifest.json", "-m", "msg")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "partially committed" in result.output
        assert fake_api.read_file("cms-draft", ABOUT) is not None
