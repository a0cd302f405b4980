"""
sst-lowre: k-omega-SST turbulence closure with low-Reynolds-number extensions.

Menter & Esch (2001) low-Re damping of alphaStar, alpha and betaStar on top
of the k-omega-SST blending, with optional Hellsten F3 term. The closure is
discretization-agnostic; a finite-volume channel collaborator (NumPy/SciPy)
ships with the package and a DOLFINx one lives in sst_lowre.fem.

Requirements:
    - numpy, scipy, matplotlib
    - DOLFINx 0.10.0+, petsc4py, mpi4py (sst_lowre.fem only)

Example:
    from sst_lowre import ChannelGeom, NondimParams, ClosureParams, SolveParams, solve_channel
    geom = ChannelGeom(Ly=1.0, Ny=96, y_first=2e-3, growth_rate=1.06)
    result = solve_channel(geom, NondimParams(Re_tau=180), ClosureParams(),
                           SolveParams(dt=1.0, max_iter=2000, steady_tol=1e-7, out_dir="out"),
                           results_dir=None)
"""

__version__ = "0.1.0"

from sst_lowre.channel import ChannelMomentum, ChannelResult, solve_channel
from sst_lowre.config import (
    ChannelGeom,
    ClosureParams,
    CoefficientSet,
    ConfigurationError,
    NondimParams,
    SolveParams,
)
from sst_lowre.fvm import ChannelFVM
from sst_lowre.models import (
    CorrectionReport,
    FieldDivergenceError,
    KOmegaSSTLowRe,
    create_model,
)

__all__ = [
    "__version__",
    "ChannelGeom",
    "ClosureParams",
    "CoefficientSet",
    "ConfigurationError",
    "NondimParams",
    "SolveParams",
    "ChannelFVM",
    "ChannelMomentum",
    "ChannelResult",
    "solve_channel",
    "KOmegaSSTLowRe",
    "CorrectionReport",
    "FieldDivergenceError",
    "create_model",
]
