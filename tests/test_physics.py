"""Tests for the reference physics models."""
import numpy as np
import pytest

from emme.assembly import F
from emme.errors import DimensionMismatch, InvalidArgument
from emme.grid import Grid
from emme.physics import MODELS, PhysicsModel, PlasmaParameters, Stellarator, Tokamak
from emme.singularity import singularity_handler

PAIRS = [(-2.0, 1.5), (0.3, 4.0), (-3.1, -0.2)]
LAMBDAS = [1.0 + 0.5j, -0.4 + 0.2j, 2.0 + 1e-3j]


@pytest.fixture(params=sorted(MODELS))
def model(request):
    return MODELS[request.param](PlasmaParameters(beta_e=0.01))


class TestKernelSymmetry:

    @pytest.mark.parametrize("eta,eta_p", PAIRS)
    @pytest.mark.parametrize("lam", LAMBDAS)
    def test_block_symmetries(self, model, eta, eta_p, lam):
        """Blocks 0 and 2 are symmetric, block 1 antisymmetric."""
        assert model.kappa(0, eta, eta_p, lam) == pytest.approx(model.kappa(0, eta_p, eta, lam))
        assert model.kappa(2, eta, eta_p, lam) == pytest.approx(model.kappa(2, eta_p, eta, lam))
        assert model.kappa(1, eta, eta_p, lam) == pytest.approx(-model.kappa(1, eta_p, eta, lam))

    def test_kernel_is_block_zero(self, model):
        assert model.kernel(0.5, 1.5, 1j) == model.kappa(0, 0.5, 1.5, 1j)

    def test_unknown_block(self, model):
        with pytest.raises(InvalidArgument):
            model.kappa(3, 0.0, 1.0, 1j)

    def test_finite(self, model):
        for lam in LAMBDAS:
            for m in range(3):
                assert np.isfinite(model.kappa(m, -1.0, 2.0, lam))


class TestModels:

    def test_protocol(self, model):
        assert isinstance(model, PhysicsModel)

    def test_two_field_follows_beta(self):
        assert Tokamak(PlasmaParameters(beta_e=0.01)).two_field
        assert not Tokamak(PlasmaParameters(beta_e=0.0)).two_field

    def test_derived_quantities(self):
        p = PlasmaParameters(q=2.0, beta_e=0.01, tau=1.0, eta_i=1.0, epsilon_n=0.5)
        assert p.alpha == pytest.approx(4.0 * 0.01 * 2.0 * 2.0 / 0.5)
        assert p.omega_s_e == pytest.approx(-p.omega_s_i / p.tau)
        assert p.omega_d_bar == pytest.approx(2.0 * p.epsilon_n * p.omega_s_i)

    def test_bi_positive(self, model):
        etas = np.linspace(-5.0, 5.0, 11)
        assert all(model.bi(eta) >= model.params.b_theta for eta in etas)

    def test_reinitialize_updates_derived(self, model):
        alpha = model.params.alpha
        model.reinitialize(beta_e=0.02)
        assert model.beta_e == 0.02
        assert model.params.alpha == pytest.approx(2.0 * alpha)

    def test_reinitialize_unknown(self, model):
        with pytest.raises(InvalidArgument):
            model.reinitialize(not_a_parameter=1.0)

    def test_stellarator_own_parameters(self):
        s = Stellarator(PlasmaParameters(beta_e=0.01), epsilon_h_t=0.1, lh=2, r_over_R=0.1)
        assert s.deltap == pytest.approx(2.0)
        s.reinitialize(epsilon_h_t=0.2)
        assert s.deltap == pytest.approx(4.0)
        assert s.rdeltapp == pytest.approx(0.1 * 16.0)

    def test_stellarator_ripple_changes_bi(self):
        plain = Stellarator(PlasmaParameters(), epsilon_h_t=0.0)
        rippled = Stellarator(PlasmaParameters(), epsilon_h_t=0.1)
        assert plain.bi(0.7) != rippled.bi(0.7)
        # without ripple the local shear matches the tokamak
        assert plain.g_integration_f(0.7) == pytest.approx(Tokamak(PlasmaParameters()).g_integration_f(0.7))

    @pytest.mark.parametrize("field,value", [("tau", 0.0), ("epsilon_n", -1.0), ("vt", 0.0), ("beta_e", -0.1)])
    def test_invalid_parameters(self, field, value):
        with pytest.raises(InvalidArgument):
            PlasmaParameters(**{field: value})


class TestReinitializeIsAtomic:

    def test_rejected_physical_value(self):
        """A rejected change leaves the parameters and derived values as they were."""
        model = Tokamak()
        before = model.params
        with pytest.raises(InvalidArgument):
            model.reinitialize(tau=0.0, q=3.0)
        assert model.tau == 1.0
        assert model.params is before
        assert model.params.q == 1.4

    def test_rejected_stellarator_value(self):
        model = Stellarator(PlasmaParameters(), epsilon_h_t=0.1)
        deltap = model.deltap
        with pytest.raises(InvalidArgument):
            model.reinitialize(epsilon_h_t=0.3, r_over_R=0.0)
        assert model.epsilon_h_t == 0.1
        assert model.r_over_R == 0.1
        assert model.deltap == deltap

    def test_unknown_name_changes_nothing(self):
        model = Tokamak()
        with pytest.raises(InvalidArgument):
            model.reinitialize(eta_i=1.0, not_a_parameter=2.0)
        assert model.params.eta_i == 2.5


class TestEstimate:

    def setup_method(self):
        self.grid = Grid.centered(10.0, 16)
        self.coeff = singularity_handler(16)

    @pytest.mark.parametrize("cls", [Tokamak, Stellarator])
    def test_unstable_root(self, cls):
        model = cls(PlasmaParameters(beta_e=0.0))
        lam = model.estimate_eigenvalue(self.coeff, self.grid)
        p = model.params
        assert lam.real == pytest.approx(p.omega_s_i * (1.0 + p.eta_i))
        assert lam.imag > 0

    @pytest.mark.parametrize("cls", [Tokamak, Stellarator])
    def test_single_field_matrix_is_singular(self, cls):
        """For one field the estimate is the exact root: F loses rank there."""
        model = cls(PlasmaParameters(beta_e=0.0))
        lam = model.estimate_eigenvalue(self.coeff, self.grid)
        s = np.linalg.svd(np.asarray(F(lam, model, self.coeff, self.grid)), compute_uv=False)
        assert s[-1] < 1e-10 * s[0]
        assert s[-2] > 1e-3 * s[0]

    def test_follows_eta_i(self):
        model = Tokamak(PlasmaParameters(beta_e=0.0))
        first = model.estimate_eigenvalue(self.coeff, self.grid)
        model.reinitialize(eta_i=3.5)
        second = model.estimate_eigenvalue(self.coeff, self.grid)
        assert second.real > first.real
        # the spatial operator does not depend on eta_i
        assert second.imag == pytest.approx(first.imag)

    def test_requires_two_points(self):
        with pytest.raises(InvalidArgument):
            Tokamak().estimate_eigenvalue(singularity_handler(1), Grid(1.0, 1))

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            Tokamak().estimate_eigenvalue(singularity_handler(5), self.grid)
