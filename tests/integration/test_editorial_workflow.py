"""Integration tests for the editorial save/publish workflow.

Two editors work against the same in-memory hosting API, each through their
own client, adapter and cache, as two browser sessions would.
"""

import json

import pytest

from src.content_cache import FileContentCache
from src.draft_branch import DraftBranchManager
from src.hosting_client import ConflictError
from src.models import ChangeSet, PageChange
from src.storage import LocalBackend, RemoteBackend, StorageAdapter
from src.sync import PageLoader, SyncOrchestrator
from tests.helpers.fake_hosting import make_client

pytestmark = pytest.mark.integration

HOME = "src/content/pages/index.json"


def _adapter(client):
    return StorageAdapter(RemoteBackend(DraftBranchManager(client), "src/content"))


@pytest.fixture
def alice(fake_api, clock):
    return make_client(fake_api, clock=clock)


@pytest.fixture
def bob(fake_api, clock):
    return make_client(fake_api, clock=clock)


class TestSequentialCommits:
    """Repeated saves by one editor."""

    def test_second_commit_reads_fresh_sha(self, alice, fake_api):
        """Saving 'edit 1' then 'edit 2' should succeed and leave 'edit 2' staged."""
        adapter = _adapter(alice)

        adapter.save_page("home", {"title": "edit 1"}, "edit 1")
        adapter.save_page("home", {"title": "edit 2"}, "edit 2")

        assert alice.get_file_content(HOME, "cms-draft") == {"title": "edit 2"}
        assert fake_api.commit_messages[-2:] == ["edit 1", "edit 2"]


class TestConcurrentEditors:
    """Two editors racing on the same page."""

    def test_stale_sha_is_conflict(self, alice, bob, fake_api):
        """Bob's write with a sha read before Alice's commit landed should conflict."""
        _adapter(alice).save_page("home", {"title": "base"}, "base")

        # Alice commits between Bob's sha read and Bob's write
        fake_api.before_put = lambda path: _adapter(alice).save_page(
            "home", {"title": "alice"}, "alice"
        )

        with pytest.raises(ConflictError):
            _adapter(bob).save_page("home", {"title": "bob"}, "bob")

        assert alice.get_file_content(HOME, "cms-draft") == {"title": "alice"}

    def test_retry_after_reload_succeeds(self, alice, bob, fake_api):
        """After a conflict, reloading and saving again should succeed."""
        _adapter(alice).save_page("home", {"title": "base"}, "base")
        fake_api.before_put = lambda path: _adapter(alice).save_page(
            "home", {"title": "alice"}, "alice"
        )
        with pytest.raises(ConflictError):
            _adapter(bob).save_page("home", {"title": "bob"}, "bob")

        current = _adapter(bob).load_draft("home")
        _adapter(bob).save_page("home", dict(current, subtitle="bob"), "bob")

        assert bob.get_file_content(HOME, "cms-draft") == {"title": "alice", "subtitle": "bob"}

    def test_branch_existence_cache_window(self, alice, bob, fake_api, clock):
        """A branch created by another editor is seen once the 30s window passes."""
        assert bob.check_branch_exists("cms-draft") is False
        _adapter(alice).save_page("home", {}, "first save")

        clock.advance(10)
        assert bob.check_branch_exists("cms-draft") is False

        clock.advance(25)
        assert bob.check_branch_exists("cms-draft") is True

        clock.advance(10)
        assert bob.check_branch_exists("cms-draft") is True
        assert fake_api.count("GET", "/git/ref/heads/cms-draft") >= 2


class TestPublishFlow:
    """Staging, publishing and cache refresh."""

    def test_publish_makes_drafts_live(self, alice, bob, fake_api):
        """Drafts from both editors should go live in one publish."""
        _adapter(alice).save_page("home", {"title": "new home"}, "home")
        _adapter(bob).save_globals({"siteName": "Acme"}, "globals")

        merge_sha = _adapter(alice).publish()

        assert merge_sha == fake_api.head("main")
        assert json.loads(fake_api.read_file("main", HOME)) == {"title": "new home"}
        assert json.loads(fake_api.read_file("main", "src/content/globals.json")) == {
            "siteName": "Acme"
        }
        assert _adapter(alice).has_unpublished_changes() is True

    def test_publish_refreshes_cached_pages(self, alice, fake_api, tmp_path, clock):
        """A reader's cache keyed on the default branch should refresh after publish."""
        fake_api.seed_file("main", HOME, json.dumps({"title": "old"}))
        cache = FileContentCache(str(tmp_path / "cache"), clock=clock)
        adapter = _adapter(alice)
        loader = PageLoader(adapter, cache, alice.get_latest_commit_sha)
        assert loader.load_page("home") == {"title": "old"}

        adapter.save_page("home", {"title": "new"}, "new")
        adapter.publish()

        assert loader.load_page("home") == {"title": "new"}


class TestDevelopmentBatch:
    """Development-mode batch with a remote mirror."""

    def test_local_batch_mirrored(self, alice, fake_api, tmp_path):
        """A batch should write local files and mirror them to the draft branch."""
        remote = RemoteBackend(DraftBranchManager(alice), "src/content")
        adapter = StorageAdapter(LocalBackend(str(tmp_path)), mirror=remote)
        changeset = ChangeSet(
            pages=[PageChange("home", {"title": "home"}), PageChange("about", {"title": "about"})],
            globals={"siteName": "Acme"},
        )

        result = SyncOrchestrator(adapter).batch_commit(changeset, "Dev batch")

        assert result.success and result.mirrored is True
        assert json.loads((tmp_path / HOME).read_text()) == {"title": "home"}
        assert json.loads(fake_api.read_file("cms-draft", HOME)) == {"title": "home"}
        assert fake_api.read_file("main", HOME) is None
