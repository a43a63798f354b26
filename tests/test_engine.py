"""Tests for ImageAdjustmentEngine and the preview worker."""

import threading

import pytest

from pdf_image_adjuster.errors import InvalidBufferError, NotInitializedError
from pdf_image_adjuster.pipeline.processor import ImageAdjustmentEngine, ImageProcessor
from pdf_image_adjuster.pipeline.request import AdjustmentConfig, CurveConfig, HslAdjustment

from conftest import make_pixels

CONFIG_A = AdjustmentConfig(hsl=HslAdjustment(hue=60, saturation=30, lightness=10))
CONFIG_B = AdjustmentConfig(
    hsl=HslAdjustment(hue=-45, saturation=-20),
    curves=CurveConfig(rgb=[(0.0, 0.1), (0.5, 0.6), (1.0, 0.9)], g=[(0.0, 0.0), (1.0, 0.8)]),
)


@pytest.fixture
def engine():
    return ImageAdjustmentEngine(max_workers=1)


class TestImageAdjustmentEngine:
    def test_process_before_load_fails(self, engine):
        assert not engine.is_initialized
        with pytest.raises(NotInitializedError):
            engine.process(CONFIG_A)

    def test_load_rejects_bad_length(self, engine):
        with pytest.raises(InvalidBufferError):
            engine.load_original(b"\x00" * 7, 1, 2)

    def test_identity_returns_original(self, engine):
        pixels = make_pixels(10, 10, seed=1)
        engine.load_original(pixels, 10, 10)
        assert engine.process(AdjustmentConfig.identity()) == pixels

    def test_load_clones_caller_buffer(self, engine):
        data = bytearray(make_pixels(4, 4, seed=2))
        snapshot = bytes(data)
        engine.load_original(data, 4, 4)
        data[:] = bytes(len(data))
        assert engine.process(AdjustmentConfig.identity()) == snapshot

    def test_no_accumulation(self, engine):
        pixels = make_pixels(12, 9, seed=3)
        engine.load_original(pixels, 12, 9)
        engine.process(CONFIG_A)
        chained = engine.process(CONFIG_B)

        fresh = ImageAdjustmentEngine(max_workers=1)
        fresh.load_original(pixels, 12, 9)
        assert chained == fresh.process(CONFIG_B)

    def test_repeated_process_is_stable(self, engine):
        engine.load_original(make_pixels(8, 8, seed=4), 8, 8)
        assert engine.process(CONFIG_B) == engine.process(CONFIG_B)

    def test_original_untouched(self, engine):
        pixels = make_pixels(8, 8, seed=5)
        engine.load_original(pixels, 8, 8)
        engine.process(CONFIG_A)
        assert engine.original == pixels

    def test_release_is_idempotent(self, engine):
        engine.load_original(make_pixels(2, 2), 2, 2)
        engine.release()
        engine.release()
        assert not engine.is_initialized
        with pytest.raises(NotInitializedError):
            engine.process(CONFIG_A)

    def test_load_replaces_previous(self, engine):
        first = make_pixels(2, 2, seed=6)
        second = make_pixels(3, 1, seed=7)
        engine.load_original(first, 2, 2)
        engine.load_original(second, 3, 1)
        assert engine.process(AdjustmentConfig()) == second
        assert (engine.width, engine.height) == (3, 1)

    def test_lut_cache_reused_for_same_curves(self, engine):
        engine.load_original(make_pixels(2, 2), 2, 2)
        engine.process(CONFIG_B)
        luts = engine.cached_luts
        engine.process(AdjustmentConfig(hsl=HslAdjustment(hue=10), curves=CONFIG_B.curves))
        assert engine.cached_luts is luts

    def test_process_image_leaves_cached_original(self, engine):
        cached = make_pixels(4, 4, seed=8)
        other = make_pixels(4, 4, seed=9)
        engine.load_original(cached, 4, 4)
        expected = ImageAdjustmentEngine(max_workers=1)
        expected.load_original(other, 4, 4)
        assert engine.process_image(other, 4, 4, CONFIG_A) == expected.process(CONFIG_A)
        assert engine.original == cached

    def test_concurrent_process_calls(self):
        engine = ImageAdjustmentEngine(max_workers=2)
        pixels = make_pixels(64, 64, seed=10)
        engine.load_original(pixels, 64, 64)
        expected = engine.process(CONFIG_B)

        results = []

        def work():
            results.append(engine.process(CONFIG_B))

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [expected] * 4
        assert engine.original == pixels


class TestImageProcessor:
    def test_load_then_preview(self, qapp):
        worker = ImageProcessor(ImageAdjustmentEngine(max_workers=1), autostart=False)
        results = []
        loaded = []
        worker.result_ready.connect(lambda data, w, h, rid: results.append((data, w, h, rid)))
        worker.load_complete.connect(loaded.append)

        pixels = make_pixels(3, 2, seed=12)
        load_id = worker.load_image(pixels, 3, 2)
        assert worker.process_pending()
        preview_id = worker.update_preview(AdjustmentConfig())
        assert worker.process_pending()
        assert not worker.process_pending()

        assert loaded == [load_id]
        assert results == [(pixels, 3, 2, preview_id)]
        assert preview_id > load_id

    def test_latest_request_wins_but_keeps_pending_load(self, qapp):
        worker = ImageProcessor(ImageAdjustmentEngine(max_workers=1), autostart=False)
        results = []
        worker.result_ready.connect(lambda data, w, h, rid: results.append(rid))

        pixels = make_pixels(2, 2, seed=13)
        worker.load_image(pixels, 2, 2)
        worker.update_preview(CONFIG_A)
        last = worker.update_preview(AdjustmentConfig())
        worker.process_pending()

        assert results == [last]
        assert worker.engine.original == pixels

    def test_error_is_reported(self, qapp):
        worker = ImageProcessor(ImageAdjustmentEngine(max_workers=1), autostart=False)
        errors = []
        worker.error_occurred.connect(errors.append)
        worker.update_preview(CONFIG_A)
        worker.process_pending()
        assert len(errors) == 1
        assert "not initialized" in errors[0]
