"""
Unit tests for the thumbnail cache.
"""

import threading
import time

import pytest
from PIL import Image as PILImage

import thumbnails
from errors import BadRequest, InternalError, NotFound
from thumbnails import ThumbnailCache, ThumbnailKey, parse_size


class TestParseSize:
    def test_valid(self):
        assert parse_size("200x150") == (200, 150)

    @pytest.mark.parametrize(
        "size", ["0x100", "100x0", "abcxdef", "100", "-1x5", "100x", "x100", "1x2x3", "10X10", ""]
    )
    def test_invalid(self, size):
        with pytest.raises(BadRequest):
            parse_size(size)

    def test_max_dimension(self):
        assert parse_size("4096x10", max_dimension=4096) == (4096, 10)
        with pytest.raises(BadRequest, match="exceeds"):
            parse_size("4097x10", max_dimension=4096)


class TestThumbnailKey:
    def test_filename_is_pure_function_of_key(self):
        assert ThumbnailKey("abc.jpg", 200, 100).filename == "200x100_abc.jpg"
        assert ThumbnailKey("abc.jpg", 200, 100) == ThumbnailKey("abc.jpg", 200, 100)

    def test_only_base_name_is_used(self):
        key = ThumbnailKey("../../etc/passwd", 20, 20)
        assert key.source_filename == "passwd"
        assert key.filename == "20x20_passwd"

    def test_rejects_non_positive(self):
        with pytest.raises(BadRequest):
            ThumbnailKey("a.png", 0, 10)


class TestThumbnailCache:
    def setup_method(self):
        self.calls = 0

    def test_generates_fit_within_box(self, blobs, make_image):
        make_image("wide.png", size=(400, 200))
        cache = ThumbnailCache(blobs)

        path = cache.get_or_create("wide.png", 100, 100)

        assert path == blobs.thumbs_dir.resolve() / "100x100_wide.png"
        with PILImage.open(path) as im:
            assert im.size == (100, 50)

    @pytest.mark.parametrize("box", [(50, 80), (333, 10), (123, 77)])
    def test_never_exceeds_box_and_keeps_aspect(self, blobs, make_image, box):
        make_image("src.png", size=(640, 427))
        path = ThumbnailCache(blobs).get_or_create("src.png", *box)

        with PILImage.open(path) as im:
            w, h = im.size
        assert w <= box[0] and h <= box[1]
        assert abs(h - w * 427 / 640) <= 1

    def test_never_upscales(self, blobs, make_image):
        make_image("small.png", size=(40, 30))
        path = ThumbnailCache(blobs).get_or_create("small.png", 200, 200)

        with PILImage.open(path) as im:
            assert im.size == (40, 30)

    def test_cache_hit_is_idempotent(self, blobs, make_image, monkeypatch):
        make_image("a.png")
        cache = ThumbnailCache(blobs)
        first = cache.get_or_create("a.png", 64, 64)
        data, mtime = first.read_bytes(), first.stat().st_mtime_ns

        def boom(*args, **kwargs):
            raise AssertionError("cache hit must not regenerate")

        monkeypatch.setattr(thumbnails, "render_thumbnail", boom)
        second = cache.get_or_create("a.png", 64, 64)

        assert second == first
        assert second.read_bytes() == data
        assert second.stat().st_mtime_ns == mtime

    def test_missing_source_is_not_found_without_side_effects(self, blobs):
        with pytest.raises(NotFound):
            ThumbnailCache(blobs).get_or_create("nope.png", 10, 10)
        assert list(blobs.thumbs_dir.iterdir()) == []

    def test_path_traversal_cannot_escape_images_dir(self, blobs, encode_image):
        (blobs.images_dir.parent / "secret.png").write_bytes(encode_image())
        with pytest.raises(NotFound):
            ThumbnailCache(blobs).get_or_create("../secret.png", 10, 10)
        assert list(blobs.thumbs_dir.iterdir()) == []

    @pytest.mark.parametrize("name", ["", ".", ".."])
    def test_degenerate_names(self, blobs, name):
        with pytest.raises(NotFound):
            ThumbnailCache(blobs).get_or_create(name, 10, 10)

    def test_max_dimension(self, blobs, make_image):
        make_image("a.png")
        with pytest.raises(BadRequest):
            ThumbnailCache(blobs, max_dimension=100).get_or_create("a.png", 101, 10)

    def test_corrupt_source_leaves_nothing_behind(self, blobs):
        (blobs.images_dir / "broken.jpg").write_bytes(b"definitely not a jpeg")

        with pytest.raises(InternalError):
            ThumbnailCache(blobs).get_or_create("broken.jpg", 10, 10)
        assert list(blobs.thumbs_dir.iterdir()) == []

    def test_keeps_alpha_for_png(self, blobs, make_image):
        make_image("alpha.png", mode="RGBA")
        path = ThumbnailCache(blobs).get_or_create("alpha.png", 20, 20)

        with PILImage.open(path) as im:
            assert im.format == "PNG"
            assert im.mode == "RGBA"

    def test_jpeg_output(self, blobs, make_image):
        make_image("photo.jpg", fmt="JPEG", size=(300, 300))
        path = ThumbnailCache(blobs).get_or_create("photo.jpg", 30, 30)

        with PILImage.open(path) as im:
            assert im.format == "JPEG"
            assert im.size == (30, 30)

    def test_unknown_extension_uses_source_format(self, blobs, make_image):
        make_image("blob.unknownext", fmt="PNG")
        path = ThumbnailCache(blobs).get_or_create("blob.unknownext", 20, 20)

        with PILImage.open(path) as im:
            assert im.format == "PNG"

    def test_concurrent_misses_generate_once(self, blobs, make_image, monkeypatch):
        make_image("a.png")
        cache = ThumbnailCache(blobs)
        started = threading.Event()
        release = threading.Event()

        def slow_render(source, key, out):
            self.calls += 1
            started.set()
            release.wait(timeout=5)
            out.write(b"rendered")

        monkeypatch.setattr(thumbnails, "render_thumbnail", slow_render)
        results = []
        workers = [
            threading.Thread(target=lambda: results.append(cache.get_or_create("a.png", 10, 10)))
            for _ in range(2)
        ]
        workers[0].start()
        assert started.wait(timeout=5)
        workers[1].start()
        time.sleep(0.1)
        release.set()
        for w in workers:
            w.join(timeout=5)

        assert self.calls == 1
        assert len(results) == 2
        assert results[0] == results[1]
        assert results[0].read_bytes() == b"rendered"
        assert cache._inflight == {}

    def test_purge_removes_only_renditions_of_source(self, blobs, make_image):
        make_image("a.png")
        make_image("b.png")
        cache = ThumbnailCache(blobs)
        cache.get_or_create("a.png", 10, 10)
        cache.get_or_create("a.png", 20, 20)
        kept = cache.get_or_create("b.png", 10, 10)
        (blobs.thumbs_dir / "10x10_big_a.png").write_bytes(b"unrelated")

        assert cache.purge("a.png") == 2
        assert sorted(p.name for p in blobs.thumbs_dir.iterdir()) == ["10x10_b.png", "10x10_big_a.png"]
        assert kept.exists()

    def test_overlong_missing_name_is_not_found(self, blobs):
        with pytest.raises(NotFound):
            ThumbnailCache(blobs).get_or_create("a" * 250 + ".png", 100, 100)
        assert list(blobs.thumbs_dir.iterdir()) == []

    def test_derived_name_past_name_max_is_not_found(self, blobs, make_image):
        name = "b" * 246 + ".png"
        make_image(name)

        with pytest.raises(NotFound):
            ThumbnailCache(blobs).get_or_create(name, 100, 100)
        assert list(blobs.thumbs_dir.iterdir()) == []

    def test_long_name_within_limit_still_renders(self, blobs, make_image):
        name = "c" * 240 + ".png"
        make_image(name)

        path = ThumbnailCache(blobs).get_or_create(name, 10, 10)
        assert path.name == f"10x10_{name}"
        assert path.is_file()
