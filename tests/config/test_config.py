"""
Tests for the YAML configuration layer.
"""

import argparse
from dataclasses import FrozenInstanceError

import pytest
import yaml

from pbflux.config import (
    FluxSimulationConfig,
    SchemeSettings,
    SchemeConfig,
    FluxConfigurationError,
    load_yaml,
    from_dict,
    apply_cli_overrides,
    save_yaml,
)


class TestDefaults:

    def test_default_dissipation_coefficients(self):
        config = SchemeConfig()
        assert config.implicit is False
        assert config.kappa_2 == 0.5
        assert config.kappa_4 == 0.02
        assert config.kappa_0 == 0.15
        assert config.param_p == 0.3

    def test_scheme_config_is_frozen(self):
        config = SchemeConfig()
        with pytest.raises(FrozenInstanceError):
            config.kappa_2 = 1.0

    @pytest.mark.parametrize("time_integration, implicit", [
        ("euler_implicit", True),
        ("euler_explicit", False),
        ("runge_kutta_explicit", False),
    ])
    def test_time_integration_selects_jacobians(self, time_integration, implicit):
        sim = FluxSimulationConfig(scheme=SchemeSettings(time_integration=time_integration))
        assert sim.to_scheme_config().implicit is implicit

    def test_flow_settings_are_carried(self):
        sim = from_dict({'flow': {'gravity': True, 'froude': 0.8}})
        config = sim.to_scheme_config()
        assert config.gravity is True
        assert config.froude == 0.8


class TestValidation:

    def test_unknown_kind(self):
        with pytest.raises(FluxConfigurationError, match="Unknown scheme kind"):
            from_dict({'scheme': {'kind': 'roe'}})

    def test_unsupported_dimension(self):
        with pytest.raises(FluxConfigurationError, match="n_dim"):
            from_dict({'scheme': {'n_dim': 1}})

    def test_unknown_time_integration(self):
        with pytest.raises(FluxConfigurationError, match="time integration"):
            from_dict({'scheme': {'time_integration': 'crank_nicolson'}})

    def test_configuration_error_is_value_error(self):
        assert issubclass(FluxConfigurationError, ValueError)

    def test_unknown_keys_are_ignored(self):
        sim = from_dict({'scheme': {'kind': 'lax', 'limiter': 'venkat'}, 'turbulence': {}})
        assert sim.scheme.kind == 'lax'

    def test_string_values_are_coerced(self):
        sim = from_dict({
            'scheme': {'n_dim': '3'},
            'flow': {'gravity': 'yes'},
            'numerics': {'kappa_4': '1.5e-2'},
        })
        assert sim.scheme.n_dim == 3
        assert sim.flow.gravity is True
        assert sim.numerics.kappa_4 == pytest.approx(0.015)


class TestYaml:

    def test_round_trip(self, tmp_path):
        sim = from_dict({
            'scheme': {'kind': 'upwind', 'n_dim': 3, 'time_integration': 'euler_explicit'},
            'numerics': {'kappa_0': 0.25},
            'logging': {'level': 'DEBUG'},
        })
        path = tmp_path / "nested" / "flux.yaml"
        save_yaml(sim, path)

        loaded = load_yaml(path)
        assert loaded == sim

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(path) == FluxSimulationConfig()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "jst.yaml"
        path.write_text(yaml.dump({'numerics': {'kappa_2': 0.75}}))
        sim = load_yaml(path)
        assert sim.numerics.kappa_2 == 0.75
        assert sim.numerics.kappa_4 == 0.02
        assert sim.scheme.kind == 'jst'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "missing.yaml")


class TestCliOverrides:

    def test_explicit_values_override(self):
        args = argparse.Namespace(scheme='lax', n_dim=3, kappa_0=0.3, log_level='WARNING',
                                  time_integration=None, kappa_2=None)
        sim = apply_cli_overrides(FluxSimulationConfig(), args)

        assert sim.scheme.kind == 'lax'
        assert sim.scheme.n_dim == 3
        assert sim.numerics.kappa_0 == 0.3
        assert sim.numerics.kappa_2 == 0.5
        assert sim.logging.level == 'WARNING'
        assert sim.scheme.time_integration == 'euler_implicit'

    def test_invalid_override_is_rejected(self):
        args = argparse.Namespace(scheme='central')
        with pytest.raises(FluxConfigurationError):
            apply_cli_overrides(FluxSimulationConfig(), args)
