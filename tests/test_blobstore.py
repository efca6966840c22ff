"""
Unit tests for the blob store and path helpers.
"""

import io

import pytest

from errors import NotFound
from utils import atoi_default, base_name, resolve_under_root


class TestPathHelpers:
    @pytest.mark.parametrize(
        "name,expected",
        [("a.jpg", "a.jpg"), ("../../a.jpg", "a.jpg"), ("x\\y\\a.jpg", "a.jpg"), ("dir/", "")],
    )
    def test_base_name(self, name, expected):
        assert base_name(name) == expected

    def test_resolve_under_root(self, tmp_path):
        assert resolve_under_root(tmp_path, "../a.jpg") == tmp_path.resolve() / "a.jpg"
        with pytest.raises(NotFound):
            resolve_under_root(tmp_path, "..")

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, 7), ("", 7), ("3", 3), ("0", 7), ("-2", 7), ("x", 7), ("1.5", 7),
            ("99999999999999999999", 7), (str(2**63), 7), (str(2**63 - 1), 2**63 - 1),
        ],
    )
    def test_atoi_default(self, value, expected):
        assert atoi_default(value, 7) == expected


class TestBlobStore:
    def test_atomic_writer_renames_on_success(self, blobs):
        target = blobs.thumb_path("t.bin")
        with blobs.atomic_writer(target) as fh:
            fh.write(b"data")
            assert not target.exists()

        assert target.read_bytes() == b"data"
        assert [p.name for p in blobs.thumbs_dir.iterdir()] == ["t.bin"]

    def test_atomic_writer_discards_on_error(self, blobs):
        target = blobs.thumb_path("t.bin")
        with pytest.raises(RuntimeError):
            with blobs.atomic_writer(target) as fh:
                fh.write(b"partial")
                raise RuntimeError("encoder blew up")

        assert list(blobs.thumbs_dir.iterdir()) == []

    def test_save_image_without_limit(self, blobs):
        path = blobs.save_image(io.BytesIO(b"abc"), "x.png")
        assert path.read_bytes() == b"abc"

    def test_thumbs_for(self, blobs):
        for name in ("10x20_a.png", "300x300_a.png", "10x20_b.png", "ax1_a.png"):
            (blobs.thumbs_dir / name).write_bytes(b"")

        assert sorted(p.name for p in blobs.thumbs_for("a.png")) == ["10x20_a.png", "300x300_a.png"]
