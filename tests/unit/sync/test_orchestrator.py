"""Unit tests for sync.orchestrator module."""

import json

import pytest

from src.draft_branch import DraftBranchManager
from src.hosting_client import CancellationToken, OperationCancelledError
from src.models import ChangeSet, PageChange
from src.storage import LocalBackend, RemoteBackend, StorageAdapter
from src.storage.errors import InvalidPageIdError
from src.sync import BatchCommitResult, SyncOrchestrator

INDEX = "src/content/pages/index.json"
ABOUT = "src/content/pages/about.json"
GLOBALS = "src/content/globals.json"


def _changeset():
    return ChangeSet(
        pages=[
            PageChange("index", {"components": [{"id": "hero"}]}),
            PageChange("about", {"components": []}),
        ],
        globals={"siteName": "Acme"},
    )


@pytest.fixture
def remote(client):
    return RemoteBackend(DraftBranchManager(client), "src/content")


@pytest.fixture
def production(remote):
    return SyncOrchestrator(StorageAdapter(remote))


class TestBatchCommitProduction:
    """Test cases for batch_commit in production mode."""

    def test_commits_every_file(self, production, fake_api):
        """All pages and globals should land on the draft branch with one message."""
        result = production.batch_commit(_changeset(), "Update landing pages")

        assert result.success
        assert result.committed == [INDEX, ABOUT, GLOBALS]
        assert json.loads(fake_api.read_file("cms-draft", GLOBALS)) == {"siteName": "Acme"}
        assert fake_api.commit_messages[-3:] == ["Update landing pages"] * 3

    def test_ensures_branch_once(self, production, fake_api):
        """The draft branch should be ensured once, not once per file."""
        production.batch_commit(_changeset(), "msg")

        assert fake_api.count("POST", "/git/refs") == 1
        assert fake_api.count("GET", "/git/ref/heads/cms-draft") == 1

    def test_partial_failure_continues(self, production, fake_api):
        """A failed file should be recorded and the rest still committed."""
        fake_api.fail_next(500, method="PUT")

        result = production.batch_commit(_changeset(), "msg")

        assert not result.success
        assert result.failed_paths == [INDEX]
        assert result.committed == [ABOUT, GLOBALS]
        assert fake_api.read_file("cms-draft", INDEX) is None

    def test_branch_failure_fails_every_file(self, production, fake_api):
        """If the draft branch cannot be ensured, every file is failed."""
        fake_api.fail_next(500)

        result = production.batch_commit(_changeset(), "msg")

        assert result.committed == []
        assert result.failed_paths == [INDEX, ABOUT, GLOBALS]
        assert fake_api.count("PUT") == 0

    def test_empty_changeset(self, production, fake_api):
        """An empty changeset should do nothing."""
        result = production.batch_commit(ChangeSet(), "msg")

        assert result == BatchCommitResult()
        assert fake_api.requests == []

    def test_invalid_id_writes_nothing(self, production, fake_api):
        """An invalid page id should fail the whole batch before any request."""
        changeset = ChangeSet(pages=[PageChange("index", {}), PageChange("../x", {})])

        with pytest.raises(InvalidPageIdError):
            production.batch_commit(changeset, "msg")

        assert fake_api.requests == []

    def test_cancellation_stops_between_files(self, production, fake_api):
        """Cancelling during the first write should stop before the second."""
        token = CancellationToken()
        fake_api.before_put = lambda path: token.cancel()

        with pytest.raises(OperationCancelledError):
            production.batch_commit(_changeset(), "msg", cancellation=token)

        assert fake_api.read_file("cms-draft", INDEX) is not None
        assert fake_api.read_file("cms-draft", ABOUT) is None
        assert fake_api.count("PUT") == 1


class TestBatchCommitDevelopment:
    """Test cases for batch_commit in development mode."""

    def test_writes_local_files(self, tmp_path):
        """Every document should be written locally."""
        orchestrator = SyncOrchestrator(StorageAdapter(LocalBackend(str(tmp_path))))

        result = orchestrator.batch_commit(_changeset(), "msg")

        assert result.committed == [INDEX, ABOUT, GLOBALS]
        assert result.mirrored is None
        assert json.loads((tmp_path / GLOBALS).read_text()) == {"siteName": "Acme"}

    def test_mirrors_whole_batch(self, tmp_path, remote, fake_api):
        """With a mirror the batch is also committed to the draft branch."""
        adapter = StorageAdapter(LocalBackend(str(tmp_path)), mirror=remote)

        result = SyncOrchestrator(adapter).batch_commit(_changeset(), "Batch edit")

        assert result.mirrored is True
        assert fake_api.read_file("cms-draft", ABOUT) is not None
        assert fake_api.commit_messages[-1] == "Batch edit"

    def test_mirror_failure_keeps_local(self, tmp_path, remote, fake_api):
        """A failed mirror should be reported without failing the batch."""
        adapter = StorageAdapter(LocalBackend(str(tmp_path)), mirror=remote)
        fake_api.fail_next(500)

        result = SyncOrchestrator(adapter).batch_commit(_changeset(), "msg")

        assert result.success
        assert result.mirrored is False
        assert (tmp_path / INDEX).exists()

    def test_mirror_unexpected_response_keeps_local(self, tmp_path, remote, fake_api):
        """A malformed 2xx body during the mirror should be reported, not raised."""
        adapter = StorageAdapter(LocalBackend(str(tmp_path)), mirror=remote)
        fake_api.fail_next(200, {"unexpected": True}, method="GET")

        result = SyncOrchestrator(adapter).batch_commit(_changeset(), "msg")

        assert result.success
        assert result.mirrored is False
        assert (tmp_path / ABOUT).exists()
