"""Tests for adjustment config value types."""

import dataclasses

import pytest

from pdf_image_adjuster.config import CURVE_CHANNELS
from pdf_image_adjuster.pipeline.request import (
    AdjustmentConfig,
    CurveConfig,
    CurvePoint,
    HslAdjustment,
    ProcessRequest,
)


class TestHslAdjustment:
    def test_identity(self):
        assert HslAdjustment().is_identity()
        assert not HslAdjustment(lightness=1).is_identity()

    def test_clamped(self):
        assert HslAdjustment(hue=400, saturation=-150, lightness=101).clamped() == HslAdjustment(180, -100, 100)


class TestCurveConfig:
    def test_default_is_identity(self):
        curves = CurveConfig()
        assert curves.is_identity()
        assert curves.master == (CurvePoint(0.0, 0.0), CurvePoint(1.0, 1.0))

    def test_accepts_pairs_and_dicts(self):
        curves = CurveConfig(r=[(0.0, 0.2), (1.0, 1.0)], g=[{'x': 0.5, 'y': 0.4}])
        assert curves.r == (CurvePoint(0.0, 0.2), CurvePoint(1.0, 1.0))
        assert curves.g == (CurvePoint(0.5, 0.4),)
        assert not curves.is_identity()

    def test_channel_lookup(self):
        curves = CurveConfig(b=[(0.0, 1.0), (1.0, 0.0)])
        assert curves.channel("B") == curves.b
        assert curves.channel("master") == curves.rgb
        with pytest.raises(KeyError):
            curves.channel("alpha")

    def test_hashable(self):
        assert hash(CurveConfig()) == hash(CurveConfig())


class TestAdjustmentConfig:
    def test_identity(self):
        assert AdjustmentConfig.identity().is_identity()
        assert AdjustmentConfig.identity() == AdjustmentConfig()

    def test_dict_format(self):
        config = AdjustmentConfig(
            hsl=HslAdjustment(hue=-30, saturation=10, lightness=5),
            curves=CurveConfig(rgb=[(0.0, 0.0), (0.5, 0.7), (1.0, 1.0)]),
        )
        data = config.to_dict()
        assert data['version'] == "v1"
        assert data['hsl'] == {'hue': -30, 'saturation': 10, 'lightness': 5}
        assert data['curves']['rgb'][1] == {'x': 0.5, 'y': 0.7}
        assert AdjustmentConfig.from_dict(data) == config

    def test_from_partial_dict(self):
        config = AdjustmentConfig.from_dict({'hsl': {'hue': 15}})
        assert config.hsl == HslAdjustment(hue=15)
        assert config.curves.is_identity()


class TestProcessRequest:
    def test_pixels_are_copied(self):
        data = bytearray(b"\x01\x02\x03\x04")
        request = ProcessRequest(1, pixels=data, width=1, height=1)
        data[0] = 9
        assert request.pixels == b"\x01\x02\x03\x04"
        assert request.is_load

    def test_config_only_request(self):
        assert not ProcessRequest(2, config=AdjustmentConfig()).is_load

    def test_request_is_frozen(self):
        request = ProcessRequest(3, pixels=bytes(4), width=1, height=1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.pixels = bytes([1, 2, 3, 4])


class TestChannelNames:
    def test_dict_uses_every_channel(self):
        data = AdjustmentConfig().to_dict()
        assert tuple(data['curves']) == CURVE_CHANNELS
