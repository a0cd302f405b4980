"""
Wall-normal grids, wall distance and initial profiles for channel flow.

Contains:
- Wall-refined coordinates (geometric/tanh stretching)
- Channel wall distance
- Initial condition profiles (velocity, k, omega)

All functions work on plain coordinate arrays so they serve the
finite-volume and the finite-element collaborators alike.
"""

import numpy as np

from sst_lowre.config import BETA1, ChannelGeom


# =============================================================================
# Grid generation
# =============================================================================


def generate_stretched_coords(
    y_first: float,
    H: float,
    N: int,
    growth: float,
    stretching: str = "geometric",
) -> np.ndarray:
    """N+1 wall-refined coordinates on [0, H] with the requested stretching."""
    if N <= 0:
        raise ValueError(f"N must be > 0, got {N}")
    if stretching == "geometric":
        return _stretched_coords_geometric(H, N, growth)
    if stretching == "tanh":
        return _stretched_coords_tanh(y_first, H, N)
    raise ValueError(f"Unknown stretching '{stretching}'. Expected 'geometric' or 'tanh'.")


def _stretched_coords_geometric(H: float, N: int, growth: float) -> np.ndarray:
    """
    Geometric series from the wall: the first spacing follows from
    H = dy1 * (growth^N - 1) / (growth - 1).
    """
    if growth <= 0.0:
        raise ValueError(f"growth must be > 0, got {growth}")
    if growth == 1.0:
        return np.linspace(0.0, H, N + 1)

    dy1 = H * (growth - 1.0) / (growth**N - 1.0)
    y = np.concatenate([[0.0], np.cumsum(dy1 * growth ** np.arange(N))])
    y[-1] = H
    return y


def _stretched_coords_tanh(y_first: float, H: float, N: int) -> np.ndarray:
    """
    y(eta) = H * [1 - tanh(beta*(1-eta))/tanh(beta)], eta in [0,1],
    with beta found by bisection so that the first spacing equals y_first.
    """
    if y_first <= 0 or y_first >= H:
        raise ValueError(f"tanh stretching requires 0 < y_first < H, got y_first={y_first}, H={H}")
    if y_first >= H / N:
        return np.linspace(0.0, H, N + 1)

    def dy1(beta: float) -> float:
        return H * (1.0 - np.tanh(beta * (1.0 - 1.0 / N)) / np.tanh(beta))

    beta_lo, beta_hi = 1e-12, 1.0
    while dy1(beta_hi) > y_first:
        beta_hi *= 2.0
        if beta_hi > 1e6:
            raise ValueError(
                f"Could not match y_first={y_first:.6e} with tanh stretching (H={H}, N={N})"
            )
    for _ in range(80):
        beta_mid = 0.5 * (beta_lo + beta_hi)
        if dy1(beta_mid) > y_first:
            beta_lo = beta_mid
        else:
            beta_hi = beta_mid

    beta = 0.5 * (beta_lo + beta_hi)
    eta = np.linspace(0.0, 1.0, N + 1)
    y = H * (1.0 - np.tanh(beta * (1.0 - eta)) / np.tanh(beta))
    y[0] = 0.0
    y[-1] = H
    return y


def channel_faces(geom: ChannelGeom) -> np.ndarray:
    """Cell-face coordinates across the channel.

    Half channel: [0, Ly] refined at y=0. Full channel: [0, Ly] refined at
    both walls (mirrored half grid, Ny must be even).
    """
    stretching = geom.stretching.lower()
    if geom.use_symmetry:
        return generate_stretched_coords(geom.y_first, geom.Ly, geom.Ny, geom.growth_rate, stretching)

    if geom.Ny % 2:
        raise ValueError(f"Full channel needs an even Ny, got {geom.Ny}")
    half = generate_stretched_coords(
        geom.y_first, 0.5 * geom.Ly, geom.Ny // 2, geom.growth_rate, stretching
    )
    return np.concatenate([half, geom.Ly - half[-2::-1]])


def channel_wall_distance(y, Ly: float, use_symmetry: bool = True) -> np.ndarray:
    """
    Wall distance for channel geometry.

    Half channel (wall at y=0, symmetry at y=Ly): d = y.
    Full channel (walls at y=0 and y=Ly): d = min(y, Ly - y).
    """
    y = np.asarray(y, dtype=float)
    d = y if use_symmetry else np.minimum(y, Ly - y)
    return np.maximum(d, 1e-10)


# =============================================================================
# Initial conditions
# =============================================================================


def initial_velocity_channel(y, u_bulk: float, Ly: float, use_symmetry: bool = True) -> np.ndarray:
    """Parabolic streamwise velocity with bulk value u_bulk."""
    y = np.asarray(y, dtype=float)
    if use_symmetry:
        eta = y / Ly
        return 1.5 * u_bulk * (2.0 * eta - eta**2)
    eta = 2.0 * y / Ly - 1.0
    return 1.5 * u_bulk * (1.0 - eta**2)


def initial_k_channel(y, u_bulk: float, intensity: float = 0.05) -> np.ndarray:
    """Uniform TKE from turbulence intensity."""
    k_val = max(1.5 * (intensity * u_bulk) ** 2, 1e-8)
    return np.full(np.shape(y), k_val)


def initial_omega_channel(y, u_bulk: float, H: float, nu: float, use_symmetry: bool = True) -> np.ndarray:
    """omega blended from the viscous-sublayer asymptote to a mixing-length bulk value."""
    k_val = max(1.5 * (0.05 * u_bulk) ** 2, 1e-8)
    omega_bulk = np.sqrt(k_val) / (0.07 * H)

    y_wall = channel_wall_distance(y, H if use_symmetry else 2.0 * H, use_symmetry)
    omega_wall = np.minimum(6.0 * nu / (BETA1 * y_wall**2), 1e8)

    blend = np.tanh(y_wall / (0.1 * H)) ** 2
    return np.maximum((1.0 - blend) * omega_wall + blend * omega_bulk, 1e-6)
