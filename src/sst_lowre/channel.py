"""
Fully-developed turbulent channel flow driven by the k-omega-SST low-Re closure.

Nondimensional form (Re_tau-based):
    u* = u/u_tau, y* = y/delta, nu* = 1/Re_tau

The streamwise momentum balance reduces to

    d/dy((nu + nut) du/dy) + 1 = 0

with no-slip at the wall and du/dy = 0 on the symmetry plane, so the wall
shear stress equals 1 at convergence. Each outer iteration solves momentum
with the current nut and then calls KOmegaSSTLowRe.correct().
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from sst_lowre.config import ChannelGeom, ClosureParams, NondimParams, SolveParams
from sst_lowre.fvm import ChannelFVM
from sst_lowre.geometry import (
    initial_k_channel,
    initial_omega_channel,
    initial_velocity_channel,
)
from sst_lowre.models import ConstantViscosity, MomentumCollaborator, StrainInvariants, create_model
from sst_lowre.utils import (
    HistoryWriterCSV,
    StepTablePrinter,
    diagnostics_array,
    fmt_pair_sci,
    relative_change,
)

# Conservative initial bulk velocity (u_bulk+ ~ 15-20 for Re_tau 180-1000)
U_BULK_INIT = 15.0
ALPHA_U = 0.7  # velocity under-relaxation factor


class ChannelMomentum(MomentumCollaborator):
    """Streamwise momentum of a fully-developed channel on a ChannelFVM grid."""

    def __init__(
        self,
        fvm: ChannelFVM,
        transport: ConstantViscosity,
        u0,
        *,
        body_force: float = 1.0,
        under_relax: float = ALPHA_U,
    ):
        self.fvm = fvm
        self.transport = transport
        self.body_force = float(body_force)
        self.under_relax = float(under_relax)
        self.u = np.array(u0, dtype=float)
        if self.u.shape != (fvm.n_cells,):
            raise ValueError(f"u0 has shape {self.u.shape}, expected ({fvm.n_cells},)")

    def solve(self, nut) -> np.ndarray:
        """One under-relaxed momentum solve with the current eddy viscosity."""
        nu = self.transport.nu()
        nut_wall = self.fvm.boundary_values.get("nut", {}).get("wall", 0.0)
        u_new = self.fvm.solve_diffusion(
            "U", nu + np.asarray(nut), self.body_force, D_wall=nu + nut_wall
        )
        self.u = self.under_relax * u_new + (1.0 - self.under_relax) * self.u
        return self.u

    def dudy(self) -> np.ndarray:
        return self.fvm.gradient(self.u, "U")

    def strain_invariants(self) -> StrainInvariants:
        # Simple shear: 2|symm(grad U)|^2 = dev(twoSymm(grad U)) && grad U = (du/dy)^2
        S2 = self.dudy() ** 2
        return StrainInvariants(S2=S2, GbyNu=S2.copy())

    def wall_shear_stress(self) -> float:
        """nu * du/dy at the lower wall."""
        d_wall = self.fvm.yc[0] - self.fvm.faces[0]
        return float(self.transport.nu() * self.u[0] / d_wall)

    def bulk_velocity(self) -> float:
        return float(np.sum(self.u * self.fvm.vol) / self.fvm.Ly)


@dataclass
class ChannelResult:
    """Converged (or last) state of a channel run."""

    y: np.ndarray  # Cell-centre coordinates
    y_wall: np.ndarray  # Wall distance
    u: np.ndarray
    k: np.ndarray
    omega: np.ndarray
    nut: np.ndarray
    nu: float
    iterations: int
    converged: bool
    residual: float
    tau_wall: float
    U_bulk: float
    linear_warnings: int = 0  # Unconverged omega/k linear solves over the run

    @property
    def u_tau(self) -> float:
        return float(np.sqrt(max(self.tau_wall, 0.0)))

    def y_plus(self) -> np.ndarray:
        return self.y_wall * self.u_tau / self.nu

    def u_plus(self) -> np.ndarray:
        return self.u / max(self.u_tau, 1e-12)


def solve_channel(
    geom: ChannelGeom,
    nondim: NondimParams,
    closure: ClosureParams,
    solve: SolveParams,
    results_dir: Path | None,
    coefficients=None,
) -> ChannelResult:
    """
    Solve fully-developed channel flow with the k-omega-SST low-Re closure.

    Args:
        geom: Channel geometry
        nondim: Nondimensional scaling parameters
        closure: Closure numerical parameters
        solve: Solver parameters
        results_dir: Output directory for history.csv (None = no files)
        coefficients: Optional coefficient mapping for the model read()

    Returns:
        ChannelResult with the final profiles and convergence information
    """
    if not nondim.use_body_force:
        raise ValueError("Fully-developed 1-D channel is driven by the body force; set use_body_force=true")
    if nondim.Re_tau <= 0.0:
        raise ValueError(f"Re_tau must be > 0, got {nondim.Re_tau}")

    Ly = geom.Ly
    H = Ly if geom.use_symmetry else Ly / 2.0  # H = delta (half-channel height)
    nu = 1.0 / nondim.Re_tau

    if closure.verbose:
        print(f"NONDIMENSIONAL MODE: Re_τ = {nondim.Re_tau}", flush=True)
        print(f"  ν* = 1/Re_τ = {nu:.6f}", flush=True)
        print("  Body force: f_x = 1.0", flush=True)

    fvm = ChannelFVM.from_geom(
        geom, dt=solve.dt, rtol=solve.linear_rtol, max_iter=solve.linear_max_iter
    )
    y = fvm.yc
    y_wall = fvm.wall_distance()
    y_plus_first = float(y_wall[0]) / nu
    if closure.verbose:
        print(
            f"Grid: {fvm.n_cells} cells, first cell centre y+ ≈ {y_plus_first:.2f}",
            flush=True,
        )
        if y_plus_first > 2.5:
            print("  WARNING: y+ > 2.5, low-Re wall treatment may be inaccurate", flush=True)

    transport = ConstantViscosity(nu)
    momentum = ChannelMomentum(
        fvm, transport, initial_velocity_channel(y, U_BULK_INIT, Ly, geom.use_symmetry)
    )
    model = create_model(
        "kOmegaSSTLowRe",
        discretization=fvm,
        momentum=momentum,
        transport=transport,
        k=initial_k_channel(y, U_BULK_INIT),
        omega=initial_omega_channel(y, U_BULK_INIT, H, nu, geom.use_symmetry),
        config=coefficients,
        params=closure,
    )
    fvm.update_boundaries("nut", model.nut())

    table = None
    hist = None
    if solve.log_interval > 0:
        table = StepTablePrinter([
            ("iter", 6),
            ("res", 9),
            ("U_bulk", 9),
            ("τ_wall", 7),
            ("u_max", 9),
            ("k[min,max]", 20),
            ("ω[min,max]", 20),
            ("ν_t/ν", 12),
        ])
        if results_dir is not None:
            hist = HistoryWriterCSV(
                Path(results_dir) / "history.csv",
                ["iter", "residual", "res_u", "res_k", "res_w", "U_bulk", "tau_wall",
                 "u_max", "k_min", "k_max", "omega_min", "omega_max", "nu_t_nu_max", "lin_warn"],
            )

    if closure.verbose:
        print(f"\nSolving RANS {model.display_name} channel flow", flush=True)
        print(f"dt={solve.dt}, max_iter={solve.max_iter}, steady_tol={solve.steady_tol}\n", flush=True)

    step = 0
    residual = float("inf")
    converged = False
    n_warn = 0
    try:
        while step < solve.max_iter:
            step += 1
            u_old = momentum.u.copy()
            k_old = np.array(model.k())
            w_old = np.array(model.omega())

            momentum.solve(model.nut())
            report = model.correct()
            n_warn += len(report.warnings)

            res_u = relative_change(momentum.u, u_old, comm=fvm.comm)
            res_k = relative_change(model.k(), k_old, comm=fvm.comm)
            res_w = relative_change(model.omega(), w_old, comm=fvm.comm)
            residual = max(res_u, res_k, res_w)  # Converge when ALL fields converge

            if table is not None and (step % solve.log_interval == 0 or step == 1):
                U_bulk = momentum.bulk_velocity()
                tau_wall = momentum.wall_shear_stress()
                kd = diagnostics_array(model.k(), comm=fvm.comm)
                wd = diagnostics_array(model.omega(), comm=fvm.comm)
                u_max = float(np.max(momentum.u))
                nu_t_ratio = float(np.max(model.nut())) / nu
                table.row([
                    f"{step:6d}",
                    f"{residual:9.1e}",
                    f"{U_bulk:9.3f}",
                    f"{tau_wall:7.4f}",
                    f"{u_max:9.3f}",
                    fmt_pair_sci(kd["min"], kd["max"], prec=1),
                    fmt_pair_sci(wd["min"], wd["max"], prec=1),
                    f"{nu_t_ratio:12.1f}",
                ])
                if hist is not None:
                    hist.write({
                        "iter": step,
                        "residual": residual,
                        "res_u": res_u,
                        "res_k": res_k,
                        "res_w": res_w,
                        "U_bulk": U_bulk,
                        "tau_wall": tau_wall,
                        "u_max": u_max,
                        "k_min": kd["min"],
                        "k_max": kd["max"],
                        "omega_min": wd["min"],
                        "omega_max": wd["max"],
                        "nu_t_nu_max": nu_t_ratio,
                        "lin_warn": n_warn,
                    })

            if residual < solve.steady_tol:
                converged = True
                if closure.verbose:
                    print(f"\n*** CONVERGED at iteration {step} (residual = {residual:.2e}) ***", flush=True)
                break
    finally:
        if hist is not None:
            hist.close()

    if not converged and closure.verbose:
        print(
            f"WARNING: not converged after {step} iterations (residual = {residual:.2e})",
            flush=True,
        )
    if n_warn and closure.verbose:
        print(f"WARNING: {n_warn} linear solves did not converge during the run", flush=True)

    return ChannelResult(
        y=y.copy(),
        y_wall=np.array(y_wall),
        u=momentum.u.copy(),
        k=np.array(model.k()),
        omega=np.array(model.omega()),
        nut=np.array(model.nut()),
        nu=nu,
        iterations=step,
        converged=converged,
        residual=residual,
        tau_wall=momentum.wall_shear_stress(),
        U_bulk=momentum.bulk_velocity(),
        linear_warnings=n_warn,
    )
