"""Tests for odesketch/parameters.py and odesketch/config.py."""

import pytest

from odesketch.config import DEFAULT_EXPRESSION, DEFAULT_SETTINGS, OdeSettings
from odesketch.parameters import DEFAULT_INTEGRATOR_CONFIG, IntegratorConfig
from odesketch.schemes import EmbeddedMethod
from odesketch.symbols import CoordinateFrame


class TestIntegratorConfig:
    def test_defaults(self):
        cfg = DEFAULT_INTEGRATOR_CONFIG
        assert cfg.relative_tolerance == 1e-4
        assert cfg.safety_factor == 0.9
        assert cfg.min_step == 1e-6
        assert cfg.max_step == 1e-2
        assert cfg.max_iterations == 1000

    @pytest.mark.parametrize("changes", [
        {"relative_tolerance": 0.0},
        {"relative_tolerance": float("nan")},
        {"safety_factor": 0.0},
        {"safety_factor": 1.5},
        {"min_step": -1e-3},
        {"min_step": 1e-2, "max_step": 1e-3},
        {"max_iterations": -1},
        {"max_iterations": 2.5},
    ])
    def test_invalid(self, changes):
        with pytest.raises(ValueError):
            IntegratorConfig(**changes)

    def test_zero_iterations_allowed(self):
        assert IntegratorConfig(max_iterations=0).max_iterations == 0

    def test_clamp(self):
        cfg = IntegratorConfig(min_step=0.1, max_step=1.0)
        assert cfg.clamp(0.01) == 0.1
        assert cfg.clamp(0.5) == 0.5
        assert cfg.clamp(5.0) == 1.0

    def test_updated_validates(self):
        assert DEFAULT_INTEGRATOR_CONFIG.updated(max_step=0.5).max_step == 0.5
        with pytest.raises(ValueError):
            DEFAULT_INTEGRATOR_CONFIG.updated(safety_factor=2.0)


class TestOdeSettings:
    def test_defaults(self):
        assert DEFAULT_SETTINGS.inputs.inputs == (DEFAULT_EXPRESSION,)
        assert DEFAULT_SETTINGS.inputs.ok
        assert DEFAULT_SETTINGS.coordinate is CoordinateFrame.CARTESIAN
        assert DEFAULT_SETTINGS.ics == (1.0, 1.0)
        assert DEFAULT_SETTINGS.integration_length == 10.0
        assert DEFAULT_SETTINGS.dimensions == 1
        assert DEFAULT_SETTINGS.method is EmbeddedMethod.RKF45
        assert DEFAULT_SETTINGS.initial_step == 1e-3

    def test_ics_must_be_a_point(self):
        with pytest.raises(ValueError):
            OdeSettings(ics=(1.0, 2.0, 3.0))

    def test_ics_coerced_to_floats(self):
        settings = OdeSettings(ics=[1, 2])
        assert settings.ics == (1.0, 2.0)
        assert isinstance(settings.ics[0], float)

    def test_with_expression_leaves_original(self):
        edited = DEFAULT_SETTINGS.with_expression("y")
        assert edited.inputs.inputs == ("y",)
        assert DEFAULT_SETTINGS.inputs.inputs == (DEFAULT_EXPRESSION,)

    def test_with_bad_expression_keeps_error(self):
        edited = DEFAULT_SETTINGS.with_expression("x +")
        assert not edited.inputs.ok
        assert edited.inputs.error

    def test_updated(self):
        polar = DEFAULT_SETTINGS.updated(coordinate=CoordinateFrame.POLAR)
        assert polar.coordinate is CoordinateFrame.POLAR
        assert DEFAULT_SETTINGS.coordinate is CoordinateFrame.CARTESIAN
