"""
Plotting and profile export for sst-lowre channel runs.

Works on the ChannelResult returned by channel.solve_channel and on the
history.csv written during the run.
"""

import csv
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np


def write_channel_profile_csv(result, save_path: Path) -> None:
    """
    Export wall-normal channel profiles.

    Output columns:
      y, y_over_delta, y_plus, u, u_plus, u_over_ubulk, k, omega, nu_t_over_nu
    """
    delta = float(np.max(result.y_wall))
    # Lower half only: a full channel is symmetric
    lower = result.y <= delta + 1e-12
    y = result.y[lower]
    u = result.u[lower]

    u_bulk = max(result.U_bulk, 1e-30)
    data = np.column_stack([
        y,
        result.y_wall[lower] / max(delta, 1e-30),
        result.y_plus()[lower],
        u,
        result.u_plus()[lower],
        u / u_bulk,
        result.k[lower],
        result.omega[lower],
        result.nut[lower] / result.nu,
    ])

    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(
        save_path,
        data,
        delimiter=",",
        header="y,y_over_delta,y_plus,u,u_plus,u_over_ubulk,k,omega,nu_t_over_nu",
        comments="",
    )
    print(f"  Saved profile CSV: {save_path}", flush=True)


def plot_channel_profiles(result, save_path: Path | None = None):
    """u+ vs y+ (with viscous sublayer and log law), k, omega and nut/nu."""
    delta = float(np.max(result.y_wall))
    lower = result.y <= delta + 1e-12
    y_plus = result.y_plus()[lower]
    u_plus = result.u_plus()[lower]
    y_over_delta = result.y_wall[lower] / max(delta, 1e-30)

    fig, axes = plt.subplots(2, 2, figsize=(12, 9))

    # u+ vs y+
    ax = axes[0, 0]
    ax.semilogx(y_plus, u_plus, "b-", linewidth=2, label="k-ω SST low-Re")
    yp = np.logspace(-1, np.log10(max(float(np.max(y_plus)), 10.0)), 200)
    ax.semilogx(yp[yp < 12], yp[yp < 12], "k:", linewidth=1, label="u+ = y+")
    ax.semilogx(yp[yp > 10], np.log(yp[yp > 10]) / 0.41 + 5.2, "k--", linewidth=1, label="log law")
    ax.set_xlabel("y+")
    ax.set_ylabel("u+")
    ax.set_title("Mean velocity profile")
    ax.legend(fontsize=8)
    ax.grid(True, alpha=0.3, which="both")

    # k
    ax = axes[0, 1]
    ax.plot(y_over_delta, result.k[lower], "r-", linewidth=2)
    ax.set_xlabel("y/delta")
    ax.set_ylabel("k+")
    ax.set_title("Turbulent kinetic energy")
    ax.grid(True, alpha=0.3)
    ax.set_xlim(0.0, 1.0)

    # omega
    ax = axes[1, 0]
    ax.semilogy(y_over_delta, result.omega[lower], "g-", linewidth=2)
    ax.set_xlabel("y/delta")
    ax.set_ylabel("ω+")
    ax.set_title("Specific dissipation rate")
    ax.grid(True, alpha=0.3, which="both")
    ax.set_xlim(0.0, 1.0)

    # nut/nu
    ax = axes[1, 1]
    ax.plot(y_over_delta, result.nut[lower] / result.nu, "m-", linewidth=2)
    ax.set_xlabel("y/delta")
    ax.set_ylabel("ν_t/ν")
    ax.set_title("Eddy viscosity")
    ax.grid(True, alpha=0.3)
    ax.set_xlim(0.0, 1.0)

    status = "converged" if result.converged else "not converged"
    fig.suptitle(
        f"Channel: Re_τ = {1.0 / result.nu:.0f}, U_bulk = {result.U_bulk:.3f}, "
        f"τ_wall = {result.tau_wall:.4f} ({status}, {result.iterations} iter)"
    )
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"  Saved profile plot: {save_path}", flush=True)
    plt.close(fig)


def plot_convergence(history_file: Path, save_path: Path | None = None):
    """Plot convergence history from CSV file (residuals, log scale)."""
    data: dict[str, list[float]] = {"iter": [], "res_u": [], "res_k": [], "res_w": []}
    with open(history_file) as f:
        reader = csv.DictReader(f)
        for row in reader:
            data["iter"].append(int(row["iter"]))
            data["res_u"].append(float(row.get("res_u", row.get("residual", 1.0))))
            data["res_k"].append(float(row.get("res_k", 1.0)))
            data["res_w"].append(float(row.get("res_w", 1.0)))

    iters = data["iter"]

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.semilogy(iters, data["res_u"], "b-", linewidth=1.2, label="Momentum (u)")
    ax.semilogy(iters, data["res_k"], "r-", linewidth=1.2, label="TKE (k)")
    ax.semilogy(iters, data["res_w"], "g-", linewidth=1.2, label=r"Omega ($\omega$)")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Residual (log)")
    ax.set_title("Equation Residuals")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(loc="upper right", fontsize=9)

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"  Saved convergence plot: {save_path}", flush=True)
    plt.close(fig)
