"""
Physics models supplying the kernels of the integral eigenvalue problem.

The solver only depends on the PhysicsModel protocol. Two variants ship with
the package, a tokamak in s-alpha geometry and a stellarator with a helical
ripple on the local shear; both are reduced models meant to exercise the
solver, the kernels keep the symmetry structure the assembly relies on:

    kappa(0, eta, eta', lam) ==  kappa(0, eta', eta, lam)
    kappa(1, eta, eta', lam) == -kappa(1, eta', eta, lam)
    kappa(2, eta, eta', lam) ==  kappa(2, eta', eta, lam)

Every kernel is a pure function of its arguments, so it can be called from
several pool workers at once.

Both models also offer estimate_eigenvalue(coeff_matrix, grid), the root of
the electrostatic block, which is where the secant search starts when no
initial guess is given.
"""
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Protocol, runtime_checkable

import numpy as np
import scipy.linalg
from scipy.special import i0e

from emme.errors import DimensionMismatch, InvalidArgument

logger = logging.getLogger(__name__)


@runtime_checkable
class PhysicsModel(Protocol):
    tau: float
    beta_e: float
    two_field: bool

    def kernel(self, eta: float, eta_p: float, lam: complex) -> complex: ...

    def kappa(self, m: int, eta: float, eta_p: float, lam: complex) -> complex: ...

    def bi(self, eta: float) -> float: ...

    def reinitialize(self, **changes) -> None: ...


@dataclass
class PlasmaParameters:
    """
    Physical scalars of one configuration.

    The first block mirrors the input record; omega_s_i, omega_s_e,
    omega_d_bar and alpha are derived by parameter_init().
    """
    q: float = 1.4
    shat: float = 0.8
    tau: float = 1.0
    epsilon_n: float = 0.45
    eta_i: float = 2.5
    eta_e: float = 2.5
    b_theta: float = 0.1
    beta_e: float = 0.005
    R: float = 1.0
    vt: float = 1.0
    length: float = 10.0
    theta: float = 0.0
    npoints: int = 32
    iteration_step_limit: int = 50

    alpha: float = field(init=False, default=0.0)
    omega_s_i: float = field(init=False, default=0.0)
    omega_s_e: float = field(init=False, default=0.0)
    omega_d_bar: float = field(init=False, default=0.0)

    def __post_init__(self):
        self.parameter_init()

    def parameter_init(self):
        if self.tau <= 0:
            raise InvalidArgument(f"tau must be positive, got {self.tau}")
        if self.epsilon_n <= 0:
            raise InvalidArgument(f"epsilon_n must be positive, got {self.epsilon_n}")
        if self.vt <= 0:
            raise InvalidArgument(f"vt must be positive, got {self.vt}")
        if self.beta_e < 0:
            raise InvalidArgument(f"beta_e must be non-negative, got {self.beta_e}")

        # k_y rho_i = sqrt(b_theta), L_n = epsilon_n R
        self.omega_s_i = self.vt * np.sqrt(self.b_theta) / (self.epsilon_n * self.R)
        self.omega_s_e = -self.omega_s_i / self.tau
        self.omega_d_bar = 2.0 * self.epsilon_n * self.omega_s_i
        # ballooning pressure gradient
        self.alpha = self.q**2 * self.beta_e * (1.0 + self.tau) * (1.0 + self.eta_i) / self.epsilon_n

    @classmethod
    def input_names(cls):
        return [f.name for f in fields(cls) if f.init]


# --- shared kernel pieces ---

def lambda_f_tau(b, b_p, tau):
    """Finite Larmor radius factor Gamma_0 of the averaged b, symmetric in (b, b_p)."""
    return i0e(0.5 * (b + b_p) * tau)


def h_f_tau(omega, omega_star, eta_grad, tau):
    """Diamagnetic response (omega - omega_*(1 + eta)) / tau."""
    return (omega - omega_star * (1.0 + eta_grad)) / tau


def transit_decay(p, omega_d, eta, eta_p):
    """Decorrelation along the field line from transit (vt / qR) and drift motion."""
    omega_t = p.vt / (p.q * p.R)
    return np.exp(-(omega_t + abs(omega_d)) * abs(eta - eta_p) / p.vt)


def spatial_kernel(model, eta, eta_p):
    """
    The lambda independent part of every block kernel.

    Real and symmetric in (eta, eta_p).
    """
    p = model.params
    gamma0 = lambda_f_tau(model.bi(eta), model.bi(eta_p), p.tau)
    omega_d = 0.5 * (model.omega_d(eta) + model.omega_d(eta_p))
    return gamma0 * transit_decay(p, omega_d, eta, eta_p) / (2.0 * p.vt)


def kappa_f_tau(model, m, eta, eta_p, lam):
    """
    Block kernels shared by every model variant.

    Args:
        model: Anything with `params`, `bi(eta)` and `omega_d(eta)`.
        m: Block index, 0 (electrostatic), 1 (coupling) or 2 (magnetic).
        eta, eta_p: Grid coordinates.
        lam: Candidate eigenvalue.
    """
    p = model.params
    if m not in (0, 1, 2):
        raise InvalidArgument(f"kernel block must be 0, 1 or 2, got {m}")
    base = spatial_kernel(model, eta, eta_p)

    if m == 0:
        return -1j * h_f_tau(lam, p.omega_s_i, p.eta_i, p.tau) * base
    if m == 1:
        return np.sign(eta - eta_p) * np.sqrt(p.beta_e) * h_f_tau(lam, p.omega_s_e, p.eta_e, 1.0) * base
    return 1j * p.beta_e * lam * h_f_tau(lam, p.omega_s_e, p.eta_e, 1.0) * abs(eta - eta_p) / p.vt * base


def electrostatic_estimate(model, coeff_matrix, grid):
    """
    Unstable root of the electrostatic block.

    The block kernel is -i h(lam) S(eta, eta') with S = spatial_kernel and
    h = (lam - omega_*i (1 + eta_i)) / tau, so F(lam) = (1 + 1/tau) I + i h(lam) M
    with M = dx (C o S). It turns singular for the largest eigenvalue nu of M at

        lam = omega_*i (1 + eta_i) + i tau (1 + 1/tau) / nu

    which is exact for a single-field model and the starting point of the
    secant search when the magnetic coupling is on.
    """
    p = model.params
    n = grid.npoints
    if n < 2:
        raise InvalidArgument("the estimate needs at least two grid points")
    if tuple(np.shape(coeff_matrix)) != (n, n):
        raise DimensionMismatch(f"coefficient matrix has shape {tuple(np.shape(coeff_matrix))}, grid has {n} points")
    points = [float(x) for x in grid.grid]

    s = np.zeros((n, n))
    for i in range(n):
        for j in range(i + 1, n):
            s[i, j] = s[j, i] = spatial_kernel(model, points[i], points[j])
    m = np.asarray(coeff_matrix) * s * grid.dx
    # zero diagonal, so the trace vanishes and nu > 0 unless M == 0
    nu = scipy.linalg.eigvalsh(m)[-1]
    if not nu > 0:
        raise InvalidArgument("the electrostatic operator has no positive eigenvalue")

    diagonal = 1.0 + 1.0 / p.tau
    return complex(p.omega_s_i * (1.0 + p.eta_i), p.tau * diagonal / nu)


def _reinitialize(model, changes, own_names):
    unknown = [name for name in changes
               if name not in own_names and name not in PlasmaParameters.input_names()]
    if unknown:
        raise InvalidArgument(f"Unknown parameter(s) {unknown} for {type(model).__name__}")

    own = {k: v for k, v in changes.items() if k in own_names}
    physical = {k: v for k, v in changes.items() if k not in own_names}
    # replace() re-runs the validation, the model is only touched once both copies are accepted
    params = replace(model.params, **physical)
    replace(model, params=params, **own)

    model.params = params
    for name, value in own.items():
        setattr(model, name, value)
    model.parameter_init()
    logger.debug("Reinitialized %s with %s", type(model).__name__, changes)


@dataclass
class Tokamak:
    """Axisymmetric s-alpha equilibrium."""
    params: PlasmaParameters = field(default_factory=PlasmaParameters)

    def __post_init__(self):
        self.parameter_init()

    def parameter_init(self):
        pass

    @property
    def tau(self):
        return self.params.tau

    @property
    def beta_e(self):
        return self.params.beta_e

    @property
    def two_field(self):
        return self.params.beta_e > 0

    def g_integration_f(self, eta):
        p = self.params
        return 1.0 + (p.shat * (eta - p.theta) - p.alpha * np.sin(eta))**2

    def bi(self, eta):
        return self.params.b_theta * self.g_integration_f(eta)

    def omega_d(self, eta):
        p = self.params
        return p.omega_d_bar * (np.cos(eta) + (p.shat * eta - p.alpha * np.sin(eta)) * np.sin(eta))

    def kappa(self, m, eta, eta_p, lam):
        return kappa_f_tau(self, m, eta, eta_p, lam)

    def kernel(self, eta, eta_p, lam):
        return kappa_f_tau(self, 0, eta, eta_p, lam)

    def estimate_eigenvalue(self, coeff_matrix, grid):
        return electrostatic_estimate(self, coeff_matrix, grid)

    def reinitialize(self, **changes):
        _reinitialize(self, changes, own_names=())


@dataclass
class Stellarator:
    """
    Helical equilibrium: the tokamak shear plus an (lh, mh) ripple.

    deltap, beta_e_p, rdeltapp and curvature_aver are derived in
    parameter_init().
    """
    params: PlasmaParameters = field(default_factory=PlasmaParameters)
    eta_k: float = 0.0
    lh: int = 2
    mh: int = 10
    epsilon_h_t: float = 0.1
    alpha_0: float = 0.0
    r_over_R: float = 0.1

    deltap: float = field(init=False, default=0.0)
    beta_e_p: float = field(init=False, default=0.0)
    rdeltapp: float = field(init=False, default=0.0)
    curvature_aver: float = field(init=False, default=0.0)

    OWN_NAMES = ('eta_k', 'lh', 'mh', 'epsilon_h_t', 'alpha_0', 'r_over_R')

    def __post_init__(self):
        self.parameter_init()

    def parameter_init(self):
        p = self.params
        if self.r_over_R <= 0:
            raise InvalidArgument(f"r_over_R must be positive, got {self.r_over_R}")
        self.deltap = self.lh * self.epsilon_h_t / self.r_over_R
        self.beta_e_p = p.beta_e * (1.0 + p.tau) * (1.0 + p.eta_i) / p.epsilon_n
        self.rdeltapp = self.r_over_R * self.deltap**2
        # magnetic well from the helical field minus the pressure-driven shift
        self.curvature_aver = self.alpha_0 * self.rdeltapp - self.beta_e_p * self.r_over_R

    @property
    def tau(self):
        return self.params.tau

    @property
    def beta_e(self):
        return self.params.beta_e

    @property
    def two_field(self):
        return self.params.beta_e > 0

    def sigma_f(self, eta):
        """Local shear including the helical ripple."""
        p = self.params
        return (p.shat * (eta - p.theta) - p.alpha * np.sin(eta)
                - self.epsilon_h_t * self.mh * np.sin(self.lh * eta - self.mh * self.eta_k))

    def g_integration_f(self, eta):
        return 1.0 + self.sigma_f(eta)**2

    def bi(self, eta):
        return self.params.b_theta * self.g_integration_f(eta)

    def omega_d(self, eta):
        p = self.params
        return p.omega_d_bar * (np.cos(eta) + self.curvature_aver + self.sigma_f(eta) * np.sin(eta))

    def kappa(self, m, eta, eta_p, lam):
        return kappa_f_tau(self, m, eta, eta_p, lam)

    def kernel(self, eta, eta_p, lam):
        return kappa_f_tau(self, 0, eta, eta_p, lam)

    def estimate_eigenvalue(self, coeff_matrix, grid):
        return electrostatic_estimate(self, coeff_matrix, grid)

    def reinitialize(self, **changes):
        _reinitialize(self, changes, own_names=self.OWN_NAMES)


MODELS = {
    'tokamak': Tokamak,
    'stellarator': Stellarator,
}
