"""
Tests for kernel construction and the single evaluation entry point.

Validates:
1. Construction contract (dimension, n_var, scheme kind)
2. Dispatch through ``evaluate`` for every scheme
3. Returned arrays are not aliased to kernel scratch buffers
4. Jacobian consistency diagnostics
"""

import numpy as np
import pytest
from loguru import logger
from numpy.testing import assert_allclose, assert_array_equal

from pbflux.config import SchemeConfig, FluxConfigurationError, from_dict
from pbflux.numerics import (
    SchemeKind,
    KERNEL_CLASSES,
    FluxKernel,
    UpwindFlux,
    CentralJSTFlux,
    CentralLaxFlux,
    PressureSourceFlux,
    create_kernel,
    kernel_from_config,
    evaluate,
    unpack_primitive,
    jacobian_consistency_error,
)
from pbflux.utils.logging import setup_logging


class TestConstruction:

    def test_registry_covers_every_kind(self):
        assert set(KERNEL_CLASSES) == set(SchemeKind)
        for kind, cls in KERNEL_CLASSES.items():
            assert cls.kind is kind

    @pytest.mark.parametrize("kind, cls", [
        ("upwind", UpwindFlux),
        ("jst", CentralJSTFlux),
        ("lax", CentralLaxFlux),
        ("pressure_source", PressureSourceFlux),
    ])
    def test_create_by_name(self, kind, cls):
        kernel = create_kernel(kind, 3, 3)
        assert isinstance(kernel, cls)
        assert isinstance(kernel, FluxKernel)
        assert kernel.implicit is False

    def test_unknown_kind(self):
        with pytest.raises(FluxConfigurationError, match="Unknown scheme kind"):
            create_kernel("roe", 2, 2)

    @pytest.mark.parametrize("n_dim", [1, 4])
    def test_unsupported_dimension(self, n_dim):
        with pytest.raises(FluxConfigurationError, match="n_dim"):
            create_kernel(SchemeKind.JST, n_dim, n_dim)

    def test_n_var_must_match_dimension(self):
        with pytest.raises(FluxConfigurationError, match="n_var"):
            UpwindFlux(2, 3)

    def test_kernel_from_config(self):
        sim = from_dict({'scheme': {'kind': 'lax', 'n_dim': 3, 'time_integration': 'euler_implicit'},
                         'numerics': {'kappa_0': 0.2}})
        kernel = kernel_from_config(sim)
        assert isinstance(kernel, CentralLaxFlux)
        assert kernel.n_dim == 3
        assert kernel.implicit is True
        assert kernel.config.kappa_0 == 0.2


class TestEvaluate:

    @pytest.mark.parametrize("kind", list(SchemeKind), ids=[k.value for k in SchemeKind])
    def test_matches_direct_call(self, kind, face, implicit_config):
        n_dim = face['normal'].shape[0]
        kernel = create_kernel(kind, n_dim, n_dim, implicit_config)

        via_evaluate = evaluate(kernel, face['V_i'], face['V_j'], face['normal'],
                                face['diss_i'], face['diss_j']).residual.copy()
        if kind in (SchemeKind.JST, SchemeKind.LAX):
            direct = kernel.compute_residual(face['V_i'], face['V_j'], face['normal'],
                                             face['diss_i'], face['diss_j'])
        else:
            direct = kernel.compute_residual(face['V_i'], face['V_j'], face['normal'])

        assert_array_equal(via_evaluate, direct.residual)

    @pytest.mark.parametrize("kind", list(SchemeKind), ids=[k.value for k in SchemeKind])
    def test_results_survive_next_call(self, kind, make_face, implicit_config):
        """Results of one call are not overwritten by the next."""
        face_a, face_b = make_face(2, seed=1), make_face(2, seed=2)
        kernel = create_kernel(kind, 2, 2, implicit_config)

        a = evaluate(kernel, face_a['V_i'], face_a['V_j'], face_a['normal'],
                     face_a['diss_i'], face_a['diss_j'])
        snapshot = [None if x is None else x.copy() for x in a]

        evaluate(kernel, face_b['V_i'], face_b['V_j'], face_b['normal'],
                 face_b['diss_i'], face_b['diss_j'])

        for before, after in zip(snapshot, a):
            if before is None:
                assert after is None
            else:
                assert_array_equal(after, before)

    def test_wrong_normal_shape(self, face):
        n_dim = face['normal'].shape[0]
        kernel = UpwindFlux(n_dim, n_dim)
        with pytest.raises(ValueError, match="Face normal"):
            evaluate(kernel, face['V_i'], face['V_j'], np.ones(n_dim + 1))

    def test_unpack_primitive(self):
        state = unpack_primitive([1.0, 2.0, 3.0, 4.0], 2)
        assert state.pressure == 1.0
        assert_array_equal(state.velocity, [2.0, 3.0])
        assert state.density == 4.0


class TestDiagnostics:

    @pytest.mark.parametrize("kind", [SchemeKind.UPWIND, SchemeKind.JST, SchemeKind.LAX])
    def test_jacobian_consistency(self, kind, face, implicit_config):
        n_dim = face['normal'].shape[0]
        kernel = create_kernel(kind, n_dim, n_dim, implicit_config)
        assert jacobian_consistency_error(kernel, face['V_i'], face['normal'], face['diss_i']) < 1e-7

    def test_requires_implicit_kernel(self, face, explicit_config):
        n_dim = face['normal'].shape[0]
        kernel = create_kernel("jst", n_dim, n_dim, explicit_config)
        with pytest.raises(ValueError, match="implicit"):
            jacobian_consistency_error(kernel, face['V_i'], face['normal'], face['diss_i'])

    def test_detects_wrong_jacobian(self, face):
        """A kernel whose Jacobian ignores the convective term fails the check."""
        n_dim = face['normal'].shape[0]

        class BrokenUpwind(UpwindFlux):
            def compute_residual(self, V_i, V_j, normal, diss_i=None, diss_j=None):
                result = super().compute_residual(V_i, V_j, normal)
                return result._replace(jacobian_i=np.zeros_like(result.jacobian_i),
                                       jacobian_j=np.zeros_like(result.jacobian_j))

        kernel = BrokenUpwind(n_dim, n_dim, SchemeConfig(implicit=True))
        assert jacobian_consistency_error(kernel, face['V_i'], face['normal']) > 1e-3


class TestLogging:

    def test_setup_logging_filters_by_level(self):
        messages = []
        setup_logging(level="WARNING", show_time=False)
        sink_id = logger.add(messages.append, level="WARNING", format="{message}")
        try:
            create_kernel("upwind", 2, 2)
            logger.warning("mesh has isolated nodes")
        finally:
            logger.remove(sink_id)
            setup_logging()

        assert [m.strip() for m in messages] == ["mesh has isolated nodes"]

    def test_kernel_from_config_logs_scheme(self):
        messages = []
        sink_id = logger.add(messages.append, level="INFO", format="{message}")
        try:
            kernel_from_config(from_dict({'scheme': {'kind': 'upwind', 'n_dim': 2}}))
        finally:
            logger.remove(sink_id)

        assert any("upwind" in m for m in messages)
