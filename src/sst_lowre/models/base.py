"""
Collaborator interfaces and the abstract eddy-viscosity model.

The closure never discretizes anything itself. It is handed three
collaborators at construction:

- Discretization: wall distance, gradient products, transport solves
- MomentumCollaborator: velocity-gradient invariants (S2, G/nu)
- TransportCollaborator: molecular kinematic viscosity

and works on plain per-cell NumPy arrays in between. The solver side plugs
the coefficient arrays into a fixed equation template (TransportEquation).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np


@dataclass
class TransportEquation:
    """Per-cell coefficients of the generic scalar transport template.

        ddt(psi) + div(U psi) - div(D grad psi) = Su - Sp*psi

    with psi held at `fixed_values` in `fixed_cells` (not solved there).
    """

    diffusivity: np.ndarray  # D (DkEff or DomegaEff)
    source: np.ndarray  # Su, explicit source
    implicit: np.ndarray  # Sp >= 0, linearized destruction coefficient
    fixed_cells: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    fixed_values: np.ndarray = field(default_factory=lambda: np.empty(0))


@dataclass
class SolveInfo:
    """Outcome of one linear transport solve."""

    name: str
    converged: bool
    iterations: int
    residual: float


@dataclass
class StrainInvariants:
    """Velocity-gradient invariants supplied by the momentum solver."""

    S2: np.ndarray  # 2*|symm(grad U)|^2
    GbyNu: np.ndarray  # dev(twoSymm(grad U)) && grad U


class Discretization(ABC):
    """Mesh, discrete operators and linear solves (external collaborator)."""

    # MPI communicator for global reductions; None for a serial discretization
    comm = None

    @property
    @abstractmethod
    def n_cells(self) -> int:
        """Number of locally owned cells (or DOFs)."""

    @abstractmethod
    def wall_distance(self) -> np.ndarray:
        """Distance to the nearest wall for every cell (read-only)."""

    @abstractmethod
    def near_wall_cells(self) -> tuple[np.ndarray, np.ndarray]:
        """Indices of wall-adjacent cells and their wall distances.

        omega is prescribed (not solved) in these cells.
        """

    @abstractmethod
    def grad_dot(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Per-cell grad(a) . grad(b)."""

    @abstractmethod
    def solve_transport(
        self, name: str, psi: np.ndarray, equation: TransportEquation
    ) -> tuple[np.ndarray, SolveInfo]:
        """Assemble and solve the transport template for field `name`.

        `psi` is the previous-iteration field. Must not raise on
        non-convergence: return the partially converged field instead.
        """

    @abstractmethod
    def update_boundaries(self, name: str, values: np.ndarray) -> None:
        """Refresh boundary/ghost values of a field after it was overwritten."""

    @abstractmethod
    def all_finite(self, values: np.ndarray) -> bool:
        """True if every value in every partition is finite."""


class MomentumCollaborator(ABC):
    """Source of the velocity-gradient invariants."""

    @abstractmethod
    def strain_invariants(self) -> StrainInvariants:
        """Recompute grad(U) and return (S2, G/nu) per cell."""


class TransportCollaborator(ABC):
    """Source of the molecular kinematic viscosity."""

    @abstractmethod
    def nu(self) -> float | np.ndarray:
        """Kinematic viscosity, constant or per cell."""


class ConstantViscosity(TransportCollaborator):
    """Newtonian fluid with a single kinematic viscosity."""

    def __init__(self, nu: float):
        if nu <= 0.0:
            raise ValueError(f"nu must be > 0, got {nu}")
        self._nu = float(nu)

    def nu(self) -> float:
        return self._nu


class EddyViscosityModel(ABC):
    """Abstract interface of a 2-equation eddy-viscosity RANS model."""

    # ── Metadata ──────────────────────────────────────────────────

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Registry identifier, e.g. 'kOmegaSSTLowRe'."""

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable label."""

    # ── Fields ────────────────────────────────────────────────────

    @abstractmethod
    def k(self) -> np.ndarray:
        """Turbulent kinetic energy (read-only view)."""

    @abstractmethod
    def omega(self) -> np.ndarray:
        """Specific dissipation rate (read-only view)."""

    @abstractmethod
    def nut(self) -> np.ndarray:
        """Eddy viscosity consumed by the momentum equation (read-only view)."""

    @abstractmethod
    def epsilon(self) -> np.ndarray:
        """Dissipation rate derived from k and omega."""

    # ── Lifecycle ─────────────────────────────────────────────────

    @abstractmethod
    def read(self, config=None) -> bool:
        """Re-read model coefficients; True if any of them changed."""

    @abstractmethod
    def correct(self):
        """Solve the turbulence equations and correct the eddy viscosity."""
