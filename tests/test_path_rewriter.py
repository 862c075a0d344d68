"""Tests for component-based media path rewriting."""

from mediafolders.models import MediaRecord, Owner
from mediafolders.repositories.media_repository import MediaRepository
from mediafolders.services.path_rewriter import PathRewriter, references_folder, rewrite_reference
from tests.conftest import make_media


class TestReferencesFolder:

    def test_filesystem_path(self):
        assert references_folder("/home/streaming/alice/clips/a.mp4", "alice", "clips")

    def test_url_path(self):
        assert references_folder("https://cdn:1443/vod/alice/clips/a.mp4", "alice", "clips")

    def test_relative_path(self):
        assert references_folder("alice/clips/a.mp4", "alice", "clips")

    def test_longer_folder_name_does_not_match(self):
        assert not references_folder("/home/streaming/alice/clips2/a.mp4", "alice", "clips")

    def test_folder_under_other_login_does_not_match(self):
        assert not references_folder("/home/streaming/bob/clips/a.mp4", "alice", "clips")

    def test_login_suffix_does_not_match(self):
        assert not references_folder("/home/streaming/malice/clips/a.mp4", "alice", "clips")

    def test_host_is_not_a_path_component(self):
        assert not references_folder("https://alice/clips", "alice", "clips")

    def test_empty_values(self):
        assert not references_folder(None, "alice", "clips")
        assert not references_folder("", "alice", "clips")


class TestRewriteReference:

    def test_rewrites_filesystem_path(self):
        assert (
            rewrite_reference("/home/streaming/alice/clips/a.mp4", "alice", "clips", "shows")
            == "/home/streaming/alice/shows/a.mp4"
        )

    def test_rewrites_url_and_keeps_host_and_query(self):
        assert (
            rewrite_reference("https://cdn:1443/vod/alice/clips/a.mp4?t=3#x", "alice", "clips", "shows")
            == "https://cdn:1443/vod/alice/shows/a.mp4?t=3#x"
        )

    def test_leaves_same_substring_elsewhere(self):
        value = "/home/streaming/alice/clips_archive/clips/a.mp4"
        assert rewrite_reference(value, "alice", "clips", "shows") == value

    def test_none_passthrough(self):
        assert rewrite_reference(None, "alice", "clips", "shows") is None


class TestPathRewriter:

    def test_rewrites_only_matching_records_of_owner(self, db, owner):
        in_folder = make_media(db, owner, "clips", "a.mp4")
        similar = make_media(db, owner, "clips2", "b.mp4")

        other = Owner(id=8, login="alice", remote_target_id=owner.remote_target_id)
        db.add(other)
        db.commit()
        foreign = make_media(db, other, "clips", "c.mp4")

        rows = PathRewriter(db).rewrite(owner.id, "alice", "clips", "shows")

        assert rows == 1
        db.refresh(in_folder)
        db.refresh(similar)
        db.refresh(foreign)
        assert in_folder.path == "/home/streaming/alice/shows/a.mp4"
        assert in_folder.url.endswith("/vod/alice/shows/a.mp4")
        assert similar.path == "/home/streaming/alice/clips2/b.mp4"
        assert foreign.path == "/home/streaming/alice/clips/c.mp4"

    def test_rename_preserves_record_count(self, db, owner):
        for i in range(3):
            make_media(db, owner, "clips", f"{i}.mp4")
        repo = MediaRepository(db)

        PathRewriter(db, repo).rewrite(owner.id, "alice", "clips", "shows")

        assert repo.count_for_owner(owner.id) == 3
        assert repo.count_referencing(owner.id, "alice", "shows") == 3
        assert repo.count_referencing(owner.id, "alice", "clips") == 0

    def test_like_wildcards_in_names_are_literal(self, db, owner):
        make_media(db, owner, "summerXclips", "a.mp4")
        repo = MediaRepository(db)
        assert repo.count_referencing(owner.id, "alice", "summer_clips") == 0

    def test_same_name_is_noop(self, db, owner):
        make_media(db, owner, "clips")
        assert PathRewriter(db).rewrite(owner.id, "alice", "clips", "clips") == 0

    def test_record_with_only_path_is_rewritten(self, db, owner):
        record = MediaRecord(owner_id=owner.id, title="x", url=None, path="/srv/alice/clips/x.mp4", size_bytes=1)
        db.add(record)
        db.commit()

        assert PathRewriter(db).rewrite(owner.id, "alice", "clips", "shows") == 1
        db.refresh(record)
        assert record.url is None
        assert record.path == "/srv/alice/shows/x.mp4"
