"""Unit tests for storage.storage_adapter module."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from src.draft_branch import DraftBranchManager
from src.hosting_client import ConflictError, OperationCancelledError
from src.models import ReadResult
from src.storage.errors import DocumentCorruptedError, FilesystemError
from src.storage.local_backend import LocalBackend
from src.storage.models import RepositoryConfig, StorageMode, SyncConfig
from src.storage.remote_backend import RemoteBackend
from src.storage.storage_adapter import StorageAdapter, build_storage_adapter
from tests.helpers.fake_hosting import API_URL, OWNER, REPO, TOKEN, make_session

DOCUMENT = {"components": []}
PAGE = "src/content/pages/about.json"


def _config(mode, **kwargs):
    return SyncConfig(
        repository=RepositoryConfig(OWNER, REPO), mode=mode, api_url=API_URL, **kwargs
    )


@pytest.fixture
def remote(client):
    return RemoteBackend(DraftBranchManager(client), "src/content")


@pytest.fixture
def local(tmp_path):
    return LocalBackend(str(tmp_path), "src/content")


class TestAdapterConstruction:
    """Test cases for StorageAdapter construction."""

    def test_mirror_only_in_development(self, remote):
        """A mirror attached to a production adapter should be rejected."""
        with pytest.raises(ValueError):
            StorageAdapter(remote, mirror=remote)

    def test_mode_follows_backend(self, local, remote):
        """The adapter mode is the backend's mode."""
        assert StorageAdapter(local).mode is StorageMode.DEVELOPMENT
        assert StorageAdapter(remote).mode is StorageMode.PRODUCTION


class TestProductionAdapter:
    """Test cases for the production routing."""

    def test_save_uses_default_message(self, remote, fake_api):
        """save_page should commit with the default message."""
        StorageAdapter(remote).save_page("about", DOCUMENT)

        assert fake_api.commit_messages[-1] == "Update about via CMS"

    def test_save_globals_default_message(self, remote, fake_api):
        """save_globals should commit with the default globals message."""
        StorageAdapter(remote).save_globals({"siteName": "Acme"})

        assert fake_api.commit_messages[-1] == "Update global variables via CMS"

    def test_errors_propagate(self, remote, fake_api):
        """Remote failures in production should propagate."""
        adapter = StorageAdapter(remote)
        adapter.save_page("about", DOCUMENT)
        fake_api.before_put = lambda path: fake_api.seed_file("cms-draft", path, "{}")

        with pytest.raises(ConflictError):
            adapter.save_page("about", {"v": 2})

    def test_load_draft_and_publish(self, remote, fake_api):
        """A saved page should load back and become live after publish."""
        adapter = StorageAdapter(remote)
        adapter.save_page("about", DOCUMENT)

        assert adapter.load_draft("about") == DOCUMENT
        assert adapter.has_unpublished_changes() is True

        adapter.publish()

        assert json.loads(fake_api.read_file("main", PAGE)) == DOCUMENT


class TestDevelopmentAdapter:
    """Test cases for the development routing and mirroring."""

    def test_save_writes_local_only_without_mirror(self, local, tmp_path):
        """Without a mirror only the local file is written."""
        result = StorageAdapter(local).save_page("about", DOCUMENT)

        assert result.mirrored is None
        assert (tmp_path / "src" / "content" / "pages" / "about.json").exists()

    def test_mirror_success(self, local, remote, fake_api):
        """A successful mirror commits with the dev-mode message suffix."""
        result = StorageAdapter(local, mirror=remote).save_page("about", DOCUMENT)

        assert result.mirrored is True
        assert fake_api.commit_messages[-1] == "Update about via CMS (dev mode)"
        assert json.loads(fake_api.read_file("cms-draft", PAGE)) == DOCUMENT

    def test_mirror_failure_is_swallowed(self, local, remote, fake_api, tmp_path):
        """A mirror failure should be logged and reported, never raised."""
        fake_api.raise_next(requests.exceptions.ConnectionError("down"))

        result = StorageAdapter(local, mirror=remote).save_page("about", DOCUMENT)

        assert result.mirrored is False
        assert (tmp_path / "src" / "content" / "pages" / "about.json").exists()

    def test_mirror_failure_logs_warning(self, local, remote, fake_api, caplog):
        """A mirror failure should log a warning."""
        fake_api.fail_next(500)

        StorageAdapter(local, mirror=remote).save_globals({"siteName": "Acme"})

        assert "mirror of globals failed" in caplog.text

    def test_mirror_unexpected_response_is_swallowed(self, local, remote, fake_api, tmp_path):
        """A mirror that gets a malformed 2xx body should report failure, not raise."""
        fake_api.fail_next(200, {"unexpected": True}, method="GET")

        result = StorageAdapter(local, mirror=remote).save_page("about", DOCUMENT)

        assert result.mirrored is False
        assert (tmp_path / "src" / "content" / "pages" / "about.json").exists()

    def test_mirror_cancellation_propagates(self, local):
        """Cancellation during the mirror should not be swallowed."""
        mirror = MagicMock()
        mirror.write_page.side_effect = OperationCancelledError("commit")

        with pytest.raises(OperationCancelledError):
            StorageAdapter(local, mirror=mirror).save_page("about", DOCUMENT)

    def test_publish_is_noop(self, local):
        """publish should do nothing in development mode."""
        adapter = StorageAdapter(local)
        adapter.save_page("about", DOCUMENT)

        assert adapter.publish() is None
        assert adapter.has_unpublished_changes() is False


class TestLoadUnwrapping:
    """Test cases for read result handling."""

    def test_missing_is_none(self, local):
        """A missing document should load as None."""
        assert StorageAdapter(local).load_draft("about") is None
        assert StorageAdapter(local).load_globals() is None

    def test_corrupted_raises(self, local, tmp_path):
        """A corrupted document should raise DocumentCorruptedError."""
        pages = tmp_path / "src" / "content" / "pages"
        pages.mkdir(parents=True)
        (pages / "about.json").write_text("{broken")

        with pytest.raises(DocumentCorruptedError):
            StorageAdapter(local).load_draft("about")

    def test_failed_raises(self):
        """A failed read should raise FilesystemError."""
        backend = MagicMock()
        backend.mode = StorageMode.DEVELOPMENT
        backend.content_dir = "src/content"
        backend.read_globals.return_value = ReadResult.failed("disk error")

        with pytest.raises(FilesystemError):
            StorageAdapter(backend).load_globals()


class TestBuildStorageAdapter:
    """Test cases for build_storage_adapter factory."""

    def test_production(self, fake_api):
        """Production config should build a remote-backed adapter."""
        adapter = build_storage_adapter(
            _config(StorageMode.PRODUCTION), token=TOKEN, session=make_session(fake_api)
        )

        assert adapter.mode is StorageMode.PRODUCTION
        adapter.save_page("about", DOCUMENT)
        assert fake_api.read_file("cms-draft", PAGE) is not None

    def test_development_with_token_mirrors(self, fake_api, tmp_path):
        """Development config with a credential should attach a mirror."""
        adapter = build_storage_adapter(
            _config(StorageMode.DEVELOPMENT),
            token=TOKEN,
            project_root=str(tmp_path),
            session=make_session(fake_api),
        )

        assert adapter.mirror is not None
        assert adapter.save_page("about", DOCUMENT).mirrored is True

    def test_development_without_token_has_no_mirror(self, tmp_path):
        """Development config without any credential should not mirror."""
        adapter = build_storage_adapter(
            _config(StorageMode.DEVELOPMENT), project_root=str(tmp_path)
        )

        assert adapter.mirror is None

    def test_development_mirroring_disabled(self, tmp_path):
        """mirror_to_remote=False should not mirror even with a credential."""
        adapter = build_storage_adapter(
            _config(StorageMode.DEVELOPMENT, mirror_to_remote=False),
            token=TOKEN,
            project_root=str(tmp_path),
        )

        assert adapter.mirror is None
