"""
Tests for core data models and the cancellation token.
"""
import pytest

from doublefinder.core.cancellation import CancellationToken, is_cancelled
from doublefinder.core.errors import SearchCancelledError
from doublefinder.core.models import FileRecord, Fingerprint, FingerprintKind, SearchStats, WalkResult


class TestFileRecord:
    def test_name_and_extension_derived(self):
        record = FileRecord(path="/photos/Trip/IMG_01.JPG", size=2048, is_image=True, image_format="jpeg")
        assert record.name == "IMG_01.JPG"
        assert record.extension == ".jpg"

    def test_immutable(self):
        record = FileRecord(path="/a.txt", size=1)
        with pytest.raises(AttributeError):
            record.size = 2

    def test_to_dict_omits_unknown_image_type(self):
        assert FileRecord(path="/docs/a.txt", size=3).to_dict() == {
            "name": "a.txt", "extension": ".txt", "fullPath": "/docs/a.txt", "size": 3, "isImage": False,
        }


class TestWalkResult:
    def test_merge_appends_in_order(self):
        fingerprint = Fingerprint("abc", FingerprintKind.CONTENT)
        first, second = WalkResult(), WalkResult()
        first.add(fingerprint, FileRecord(path="/r1/a", size=1))
        second.add(fingerprint, FileRecord(path="/r2/a", size=1))
        second.skipped.append(("/r2/bad", "Permission denied"))
        second.cancelled = True

        first.merge(second)

        assert [r.path for r in first.buckets[fingerprint]] == ["/r1/a", "/r2/a"]
        assert first.skipped == [("/r2/bad", "Permission denied")]
        assert first.cancelled is True
        assert first.file_count == 2


class TestCancellationToken:
    def test_starts_clear_and_cancels_idempotently(self):
        token = CancellationToken()
        assert not token.is_cancelled() and not token()
        token.cancel()
        token.cancel()
        assert token.is_cancelled() and token()

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(SearchCancelledError, match="Aborted due to client cancel."):
            token.raise_if_cancelled()

    def test_is_cancelled_accepts_none_and_callables(self):
        assert is_cancelled(None) is False
        assert is_cancelled(lambda: True) is True


class TestSearchStats:
    def test_listeners_receive_stage_updates(self):
        stats = SearchStats()
        updates = []
        stats.add_listener(lambda stage, data: updates.append((stage, dict(data))))

        stats.update_stage("walk", groups_found=3, files_processed=10, duration=0.5)
        stats.update_stage("walk", groups_found=1, files_processed=2, duration=0.25)

        assert updates[-1] == ("walk", {"groups": 4, "files": 12, "time": 0.75})
        assert "📁 Exact Fingerprint Buckets: 4 / 12 / 0.750s" in stats.print_summary()
