"""Finite-volume channel discretization."""

import numpy as np
import pytest

from sst_lowre.config import ChannelGeom
from sst_lowre.fvm import ChannelFVM
from sst_lowre.models import TransportEquation


def test_rejects_bad_faces():
    with pytest.raises(ValueError):
        ChannelFVM(np.array([0.0, 1.0]))
    with pytest.raises(ValueError):
        ChannelFVM(np.array([0.0, 0.5, 0.4, 1.0]))
    with pytest.raises(ValueError, match="dt"):
        ChannelFVM(np.linspace(0.0, 1.0, 5), dt=0.0)


def test_geometry_half_and_full():
    half = ChannelFVM.from_geom(ChannelGeom(Ly=1.0, Ny=16, y_first=0.01, growth_rate=1.1))
    assert half.n_cells == 16
    cells, dist = half.near_wall_cells()
    np.testing.assert_array_equal(cells, [0])
    assert dist[0] == pytest.approx(half.yc[0])
    assert np.all(np.diff(half.wall_distance()) > 0)
    np.testing.assert_allclose(half.vol.sum(), 1.0)

    full = ChannelFVM.from_geom(
        ChannelGeom(Ly=2.0, Ny=16, y_first=0.01, growth_rate=1.1, use_symmetry=False)
    )
    cells, dist = full.near_wall_cells()
    np.testing.assert_array_equal(cells, [0, 15])
    assert dist[0] == pytest.approx(dist[1])

    with pytest.raises(ValueError):
        full.wall_distance()[0] = 1.0  # read-only


def test_gradient_of_linear_field():
    fvm = ChannelFVM(np.linspace(0.0, 1.0, 11) ** 1.5)
    a = 3.0 * fvm.yc + 1.0
    g = fvm.gradient(a)
    # Interior cells are exact; boundary cells see zero-gradient faces
    np.testing.assert_allclose(g[1:-1], 3.0, rtol=1e-12)

    # With a wall value the lower cell is exact too
    g = fvm.gradient(3.0 * fvm.yc, "U")
    np.testing.assert_allclose(g[:-1], 3.0, rtol=1e-12)

    np.testing.assert_allclose(fvm.grad_dot(a, a)[1:-1], 9.0, rtol=1e-12)


def test_laminar_poiseuille():
    """-d/dy(nu du/dy) = 1, u(0) = 0, du/dy(1) = 0 -> u = (y - y^2/2)/nu."""
    nu = 0.5
    fvm = ChannelFVM(np.linspace(0.0, 1.0, 201))
    u = fvm.solve_diffusion("U", nu, 1.0)
    exact = (fvm.yc - 0.5 * fvm.yc**2) / nu
    np.testing.assert_allclose(u, exact, rtol=1e-3, atol=1e-5)

    # Wall shear balances the body force
    assert nu * u[0] / fvm.yc[0] == pytest.approx(1.0, rel=1e-10)


def test_solve_transport_identity_and_fixed_cells():
    fvm = ChannelFVM(np.linspace(0.0, 1.0, 21), dt=0.1)
    n = fvm.n_cells
    psi = np.linspace(1.0, 2.0, n)

    eqn = TransportEquation(diffusivity=np.zeros(n), source=np.zeros(n), implicit=np.zeros(n))
    x, info = fvm.solve_transport("omega", psi, eqn)
    np.testing.assert_allclose(x, psi, rtol=1e-7)
    assert info.converged
    assert info.name == "omega"

    eqn = TransportEquation(
        diffusivity=np.full(n, 1e-2),
        source=np.ones(n),
        implicit=np.ones(n),
        fixed_cells=np.array([0]),
        fixed_values=np.array([5.0]),
    )
    x, info = fvm.solve_transport("omega", psi, eqn)
    assert info.converged
    assert x[0] == pytest.approx(5.0, rel=1e-6)
    assert np.all(np.isfinite(x))


def test_iteration_budget_reported():
    fvm = ChannelFVM(np.linspace(0.0, 1.0, 65) ** 2, rtol=1e-14, max_iter=1)
    n = fvm.n_cells
    eqn = TransportEquation(
        diffusivity=np.logspace(-4, 1, n), source=np.ones(n), implicit=np.zeros(n)
    )
    x, info = fvm.solve_transport("k", np.ones(n), eqn)
    assert not info.converged
    assert info.iterations <= 1
    assert np.all(np.isfinite(x))


def test_update_boundaries():
    fvm = ChannelFVM(np.linspace(0.0, 1.0, 6))
    fvm.update_boundaries("k", np.arange(1.0, 6.0))
    assert fvm.boundary_values["k"] == {"wall": 0.0, "symmetry": 5.0}
    fvm.update_boundaries("omega", np.arange(1.0, 6.0))
    assert fvm.boundary_values["omega"]["wall"] == 1.0

    assert fvm.all_finite(np.ones(3))
    assert not fvm.all_finite(np.array([1.0, np.nan]))
