"""
Critical deletion tests: only selected files go, HEIC derivatives are cleaned up,
failures are reported without stopping the batch.
"""
from unittest import mock

import pytest

from doublefinder.core.errors import DeletionError, ValidationError
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.services.deletion_service import DeletionService
from doublefinder.services.file_service import FileService


@pytest.fixture
def heic_with_derivative(temp_dir, monkeypatch):
    """A (fake) HEIC source with its cached derivative already on disk."""
    source = temp_dir / "IMG_0001.HEIC"
    source.write_bytes(b"heic bytes")
    cache_dir = temp_dir / ".cache"
    cache_dir.mkdir()
    derivative = cache_dir / "IMG_0001.jpg"
    derivative.write_bytes(b"jpeg bytes")
    monkeypatch.setattr(
        HeicNormalizerImpl, "detect_format",
        staticmethod(lambda p: "heic" if p.upper().endswith(".HEIC") else None)
    )
    return source, derivative


class TestDeletionService:
    def test_empty_selection_rejected(self):
        with pytest.raises(ValidationError, match="nothing to delete"):
            DeletionService(use_trash=False).delete({})
        with pytest.raises(ValidationError):
            DeletionService(use_trash=False).delete({"g0": []})

    def test_only_selected_files_are_deleted(self, temp_dir, text_files):
        count = DeletionService(use_trash=False).delete({"g0": [str(text_files["b"]), str(text_files["d"])]})

        assert count == 2
        assert not text_files["b"].exists()
        assert not text_files["d"].exists()
        assert text_files["a"].exists()
        assert text_files["c"].exists()

    def test_missing_files_are_skipped(self, temp_dir, text_files):
        count = DeletionService(use_trash=False).delete({
            "g0": [str(temp_dir / "already_gone.txt"), str(text_files["b"])]
        })
        assert count == 1

    def test_repeated_paths_deleted_once(self, text_files):
        selection = {"g0": [str(text_files["b"])], "g1": [str(text_files["b"])]}
        assert DeletionService.collect_paths(selection) == [str(text_files["b"])]
        assert DeletionService(use_trash=False).delete(selection) == 1

    def test_heic_derivative_and_empty_cache_removed(self, heic_with_derivative):
        source, derivative = heic_with_derivative

        count = DeletionService(use_trash=False).delete({"g0": [str(source)]})

        assert count == 1
        assert not source.exists()
        assert not derivative.exists()
        assert not derivative.parent.exists()

    def test_non_empty_cache_dir_is_kept(self, heic_with_derivative):
        source, derivative = heic_with_derivative
        other = derivative.parent / "IMG_0002.jpg"
        other.write_bytes(b"another derivative")

        DeletionService(use_trash=False).delete({"g0": [str(source)]})

        assert not derivative.exists()
        assert other.exists()

    def test_non_heic_image_leaves_cache_alone(self, temp_dir, make_image):
        photo = make_image(temp_dir / "IMG_0001.jpg")
        cache_dir = temp_dir / ".cache"
        cache_dir.mkdir()
        unrelated = cache_dir / "IMG_0001.jpg"
        unrelated.write_bytes(b"derivative of some heic")

        DeletionService(use_trash=False).delete({"g0": [str(photo)]})

        assert not photo.exists()
        assert unrelated.exists()

    def test_failures_are_aggregated_and_batch_continues(self, text_files):
        """One failing file does not stop the others; all failures come back together."""
        real_remove = FileService.remove_permanently

        def flaky_remove(path):
            if path == str(text_files["b"]):
                raise RuntimeError("Failed to delete: device busy")
            real_remove(path)

        with mock.patch.object(FileService, "remove_permanently", side_effect=flaky_remove):
            with pytest.raises(DeletionError) as exc_info:
                DeletionService(use_trash=False).delete({"g0": [str(text_files["b"]), str(text_files["d"])]})

        assert exc_info.value.failures == [(str(text_files["b"]), "Failed to delete: device busy")]
        assert "device busy" in str(exc_info.value)
        assert not text_files["d"].exists()

    def test_trash_is_default(self, text_files):
        with mock.patch("doublefinder.services.file_service.send2trash") as mock_trash:
            count = DeletionService().delete({"g0": [str(text_files["b"])]})

        assert count == 1
        mock_trash.assert_called_once_with(str(text_files["b"].resolve()))


class TestFileService:
    def test_move_to_trash_wraps_errors(self, text_files):
        with mock.patch("doublefinder.services.file_service.send2trash", side_effect=OSError("no trash")):
            with pytest.raises(RuntimeError, match="Failed to move to trash"):
                FileService.move_to_trash(str(text_files["a"]))

    def test_missing_file_raises_file_not_found(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            FileService.move_to_trash(str(temp_dir / "missing"))
        with pytest.raises(FileNotFoundError):
            FileService.remove_permanently(str(temp_dir / "missing"))

    def test_remove_dir_if_empty(self, temp_dir):
        empty = temp_dir / "empty"
        empty.mkdir()
        full = temp_dir / "full"
        full.mkdir()
        (full / "file").write_bytes(b"x")

        assert FileService.remove_dir_if_empty(str(empty)) is True
        assert FileService.remove_dir_if_empty(str(full)) is False
        assert full.exists()
