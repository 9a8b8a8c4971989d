import numpy as np
import matplotlib.pyplot as plt


def _scientific_style(ax):
    # --- Scientific-style formatting ---
    ax.tick_params(
        direction='in',   # ticks inside
        which='both',     # apply to major and minor ticks
        top=True,
        right=True
    )
    ax.minorticks_on()
    for side in ('top', 'right', 'bottom', 'left'):
        ax.spines[side].set_linewidth(1.2)


def plot_eigenmode(grid, vector, eigenvalue=None):
    """
    Plot an eigenmode along the grid.

    A vector twice as long as the grid is split into its two fields
    (electrostatic potential, then the magnetic part).

    Returns:
        matplotlib Figure
    """
    vector = np.asarray(vector).ravel()
    n = grid.npoints
    if vector.size == 2 * n:
        fields = [(r'$\phi$', vector[:n]), (r'$A_\parallel$', vector[n:])]
    else:
        fields = [(r'$\phi$', vector)]

    fig, axes = plt.subplots(len(fields), 1, figsize=(8, 3.5 * len(fields)), squeeze=False)
    for ax, (label, values) in zip(axes[:, 0], fields):
        ax.plot(grid.grid, values.real, label='Re')
        ax.plot(grid.grid, values.imag, label='Im', linestyle='--')
        ax.plot(grid.grid, np.abs(values), label='abs', color='k', linewidth=1.0)
        ax.set_xlabel(r'$\eta$')
        ax.set_ylabel(label)
        ax.legend()
        _scientific_style(ax)

    if eigenvalue is not None:
        fig.suptitle(f"Eigenmode for $\\lambda$ = {eigenvalue.real:.4f} + {eigenvalue.imag:.4f}i")
    fig.tight_layout()
    return fig


def plot_sweep(points, name):
    """Growth rate and frequency against the scanned parameter."""
    values = np.array([p.value for p in points])
    gamma = np.array([p.gamma for p in points])
    omega = np.array([p.omega for p in points])
    converged = np.array([p.state.value == 'converged' for p in points], dtype=bool)

    fig, (ax_gamma, ax_omega) = plt.subplots(1, 2, figsize=(12, 5))
    for ax, data, label in ((ax_gamma, gamma, r'Growth rate $Im(\lambda)$'),
                            (ax_omega, omega, r'Frequency $Re(\lambda)$')):
        ax.plot(values, data, color='firebrick', linewidth=2)
        # mark the points the solver gave up on
        ax.scatter(values[~converged], data[~converged], marker='x', color='k', zorder=3)
        ax.set_xlabel(name)
        ax.set_ylabel(label)
        ax.grid(True, linestyle='--', alpha=0.7)
        _scientific_style(ax)

    fig.suptitle(f'Eigenvalue vs {name}')
    fig.tight_layout()
    return fig
