"""Fully-developed channel driver (finite-volume collaborator)."""

import csv

import numpy as np
import pytest

from sst_lowre.channel import ChannelMomentum, solve_channel
from sst_lowre.config import ChannelGeom, ClosureParams, NondimParams, SolveParams
from sst_lowre.fvm import ChannelFVM
from sst_lowre.models import ConstantViscosity


def _params(tmp_path, **solve_kw):
    geom = ChannelGeom(Ly=1.0, Ny=48, y_first=0.002, growth_rate=1.08)
    nondim = NondimParams(Re_tau=180.0)
    closure = ClosureParams(verbose=False)
    solve_kw.setdefault("max_iter", 150)
    solve_kw.setdefault("log_interval", 10)
    solve = SolveParams(dt=1.0, steady_tol=1e-10, out_dir=str(tmp_path), **solve_kw)
    return geom, nondim, closure, solve


def test_momentum_laminar_strain():
    fvm = ChannelFVM(np.linspace(0.0, 1.0, 101))
    transport = ConstantViscosity(1.0)
    momentum = ChannelMomentum(fvm, transport, np.zeros(100), under_relax=1.0)
    momentum.solve(np.zeros(100))

    # Laminar: du/dy = (1 - y)/nu, tau_wall = 1
    dudy = momentum.dudy()
    np.testing.assert_allclose(dudy[:-1], 1.0 - fvm.yc[:-1], atol=2e-2)
    inv = momentum.strain_invariants()
    np.testing.assert_allclose(inv.S2, dudy**2)
    np.testing.assert_allclose(inv.GbyNu, inv.S2)
    assert momentum.wall_shear_stress() == pytest.approx(1.0, rel=1e-8)
    assert momentum.bulk_velocity() == pytest.approx(1.0 / 3.0, rel=1e-3)


def test_short_channel_run(tmp_path):
    geom, nondim, closure, solve = _params(tmp_path)
    result = solve_channel(geom, nondim, closure, solve, tmp_path)

    assert result.converged
    assert result.iterations < solve.max_iter
    assert result.residual < solve.steady_tol
    assert result.linear_warnings == 0
    # Force balance at steady state: tau_wall = body force * delta = 1
    assert result.tau_wall == pytest.approx(1.0, rel=1e-6)
    assert result.u_tau == pytest.approx(1.0, rel=1e-6)

    for arr in (result.u, result.k, result.omega, result.nut):
        assert arr.shape == (geom.Ny,)
        assert np.all(np.isfinite(arr))
    assert np.all(result.u > 0.0)
    assert np.all(result.k >= closure.k_min)
    assert np.all(result.omega > 0.0)
    assert np.all(result.nut >= 0.0)
    assert result.nu == pytest.approx(1.0 / 180.0)
    assert result.y_plus()[0] == pytest.approx(result.y_wall[0] * result.u_tau * 180.0)

    with open(tmp_path / "history.csv") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["iter"] == "1"
    assert len(rows) == 1 + result.iterations // solve.log_interval
    assert {"residual", "res_u", "res_k", "res_w", "tau_wall", "lin_warn"} <= set(rows[0])


def test_channel_run_without_files(tmp_path, capsys):
    geom, nondim, _, solve = _params(tmp_path, max_iter=3)
    result = solve_channel(geom, nondim, ClosureParams(verbose=True), solve, None)
    assert result.iterations == 3
    assert not result.converged
    assert not (tmp_path / "history.csv").exists()
    out = capsys.readouterr().out
    assert "kOmegaSSTLowReCoeffs" in out
    assert "WARNING: not converged" in out


class UnconvergedFVM(ChannelFVM):
    def solve_transport(self, name, psi, equation):
        x, info = super().solve_transport(name, psi, equation)
        info.converged = False
        return x, info


def test_unconverged_linear_solves_reach_caller(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("sst_lowre.channel.ChannelFVM", UnconvergedFVM)
    geom, nondim, closure, solve = _params(tmp_path, max_iter=3, log_interval=1)
    result = solve_channel(geom, nondim, closure, solve, tmp_path)

    # omega and k solve per iteration
    assert result.linear_warnings == 6
    assert "WARNING" not in capsys.readouterr().out

    with open(tmp_path / "history.csv") as f:
        rows = list(csv.DictReader(f))
    assert [row["lin_warn"] for row in rows] == ["2", "4", "6"]


def test_coefficients_forwarded(tmp_path, capsys):
    geom, nondim, closure, solve = _params(tmp_path, max_iter=2, log_interval=0)
    solve_channel(
        geom, nondim, ClosureParams(verbose=True), solve, None,
        coefficients={"kOmegaSSTLowReCoeffs": {"F3": "yes"}},
    )
    out = capsys.readouterr().out
    assert any(line.split() == ["F3", "yes;"] for line in out.splitlines())


def test_body_force_required(tmp_path):
    geom, _, closure, solve = _params(tmp_path)
    with pytest.raises(ValueError, match="body force"):
        solve_channel(geom, NondimParams(Re_tau=180.0, use_body_force=False), closure, solve, None)
