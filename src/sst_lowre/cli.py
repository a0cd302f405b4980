"""
Command-line interface for sst-lowre.

Usage:
    sst-lowre config.json

Config sections:
    geom          ChannelGeom
    nondim        NondimParams
    solve         SolveParams
    closure       ClosureParams (optional)
    coefficients  model coefficients, flat or under kOmegaSSTLowReCoeffs (optional)
"""

import argparse
import sys
from pathlib import Path

import numpy as np

from sst_lowre.channel import solve_channel
from sst_lowre.config import (
    ChannelGeom,
    ClosureParams,
    CoefficientSet,
    ConfigurationError,
    NondimParams,
    SolveParams,
)
from sst_lowre.plotting import (
    plot_channel_profiles,
    plot_convergence,
    write_channel_profile_csv,
)
from sst_lowre.utils import (
    dc_from_dict,
    load_json_config,
    prepare_case_dir,
    print_dc_json,
)


def _print_summary(result, results_dir: Path) -> None:
    print("\n" + "─" * 50)
    print("FINAL SOLUTION SUMMARY")
    print("─" * 50)
    print(f"  iterations: {result.iterations} ({'converged' if result.converged else 'not converged'})")
    print(f"  residual:  {result.residual:.4e}")
    print(f"  U_bulk:    {result.U_bulk:.4f}")
    print(f"  τ_wall:    {result.tau_wall:.4f}")
    print(f"  u:         [{float(np.min(result.u)):.4f}, {float(np.max(result.u)):.4f}]")
    print(f"  k:         [{float(np.min(result.k)):.4e}, {float(np.max(result.k)):.4e}]")
    print(f"  ω:         [{float(np.min(result.omega)):.4e}, {float(np.max(result.omega)):.4e}]")
    print(f"  ν_t:       [{float(np.min(result.nut)):.4e}, {float(np.max(result.nut)):.4e}]")
    if result.linear_warnings:
        print(f"  WARNING: {result.linear_warnings} unconverged linear solves")
    print("─" * 50)
    print(f"Results saved to {results_dir}/")
    print("=" * 60, flush=True)


def main(argv=None):
    """Run the k-ω SST low-Re channel solver from the command line."""
    p = argparse.ArgumentParser(
        description="k-ω SST low-Re closure: fully-developed channel flow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    sst-lowre configs/channel_re180.json
    sst-lowre --print-only configs/channel_re180.json
        """,
    )
    p.add_argument("config", type=str, help="JSON config file")
    p.add_argument("--print-only", action="store_true", help="Print config and exit")
    args = p.parse_args(argv)

    cfg_path = Path(args.config)
    cfg = load_json_config(cfg_path)

    try:
        geom = dc_from_dict(ChannelGeom, cfg.get("geom"), name="geom")
        nondim = dc_from_dict(NondimParams, cfg.get("nondim"), name="nondim")
        solve_params = dc_from_dict(SolveParams, cfg.get("solve"), name="solve")
        closure = dc_from_dict(ClosureParams, cfg.get("closure"), name="closure")
        coefficients = cfg.get("coefficients")
        coeffs, _ = CoefficientSet().read(coefficients)
    except ConfigurationError as e:
        print(f"ERROR: {e}", flush=True)
        return 1

    if args.print_only:
        print_dc_json(geom)
        print_dc_json(nondim)
        print_dc_json(solve_params)
        print_dc_json(closure)
        print_dc_json(coeffs)
        return 0

    results_dir = Path(solve_params.out_dir)
    paths = prepare_case_dir(results_dir, config_path=cfg_path, cfg=cfg)

    print("=" * 60)
    print("k-ω SST LOW-Re CHANNEL FLOW - sst-lowre")
    print("=" * 60)
    print(f"Mode: NONDIMENSIONAL (Re_τ = {nondim.Re_tau})")
    print(f"Scaling: δ = 1, u_τ = 1, ν* = 1/Re_τ = {1.0 / nondim.Re_tau:.6f}")
    print(f"Grid: {geom.Ny} cells ({geom.stretching}, growth={geom.growth_rate})")
    print(f"Domain: Ly = {geom.Ly:.2f} ({'half channel' if geom.use_symmetry else 'full channel'})")
    print(flush=True)

    result = solve_channel(
        geom, nondim, closure, solve_params, results_dir, coefficients=coefficients
    )

    write_channel_profile_csv(result, paths.profiles_csv)
    plot_channel_profiles(result, save_path=results_dir / "profiles.png")
    if paths.history_csv.exists():
        plot_convergence(paths.history_csv, save_path=results_dir / "convergence.png")

    _print_summary(result, results_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
