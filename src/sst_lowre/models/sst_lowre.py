"""
k-omega-SST turbulence model with low-Reynolds-number extensions.

References:
    Menter, F., Esch, T. "Elements of Industrial Heat Transfer Prediction",
        16th Brazilian Congress of Mechanical Engineering (COBEM), 2001.
    Hellsten, A. "Some improvements in Menter's k-omega SST turbulence
        model", AIAA-98-2554, 1998 (optional F3 rough-wall term).

Near-wall omega is prescribed from the blended viscous/log-layer expression
(Menter-Esch eq. 14) instead of being solved in wall-adjacent cells.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np

from sst_lowre.config import ClosureParams, CoefficientSet
from sst_lowre.models.base import (
    Discretization,
    EddyViscosityModel,
    MomentumCollaborator,
    SolveInfo,
    TransportCollaborator,
    TransportEquation,
)
from sst_lowre.models.blending import BlendingFunctions
from sst_lowre.models.damping import ReynoldsDamping
from sst_lowre.models.diffusivity import EffectiveDiffusivity
from sst_lowre.models.eddy_viscosity import EddyViscosityCorrector
from sst_lowre.utils import fmt_sci


class FieldDivergenceError(RuntimeError):
    """k or omega became non-finite: the run cannot continue."""


@dataclass
class CorrectionReport:
    """Diagnostics of one correct() pass."""

    iteration: int
    omega: SolveInfo
    k: SolveInfo
    warnings: list[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        """True if both linear solves met their tolerance."""
        return self.omega.converged and self.k.converged


def _readonly(a: np.ndarray) -> np.ndarray:
    v = a.view()
    v.flags.writeable = False
    return v


class KOmegaSSTLowRe(EddyViscosityModel):
    """k-omega-SST with Fluent-style low-Re damping and optional F3."""

    type_name = "kOmegaSSTLowRe"

    def __init__(
        self,
        discretization: Discretization,
        momentum: MomentumCollaborator,
        transport: TransportCollaborator,
        k: np.ndarray,
        omega: np.ndarray,
        nut: np.ndarray | None = None,
        config: Mapping[str, Any] | None = None,
        params: ClosureParams | None = None,
    ):
        self._disc = discretization
        self._momentum = momentum
        self._transport = transport
        self._params = params if params is not None else ClosureParams()
        self._config = config

        n = discretization.n_cells
        self._k = np.array(k, dtype=float)
        self._omega = np.array(omega, dtype=float)
        for name, arr in (("k", self._k), ("omega", self._omega)):
            if arr.shape != (n,):
                raise ValueError(f"{name} has shape {arr.shape}, expected ({n},)")
        self._k = np.maximum(self._k, self._params.k_min)
        self._omega = np.maximum(self._omega, self._params.omega_min)

        if nut is None:
            # Limiter inactive before the first strain evaluation
            self._nut = self._k / self._omega
        else:
            self._nut = np.maximum(np.array(nut, dtype=float), 0.0)
            if self._nut.shape != (n,):
                raise ValueError(f"nut has shape {self._nut.shape}, expected ({n},)")

        self._F1 = None
        self._iteration = 0
        self._halted = False

        coeffs, _ = CoefficientSet().read(config)
        self._bind(coeffs)

        if self._params.verbose:
            print(self._coeffs.format_coeffs(self.type_name), flush=True)
            if self._params.utau_blending:
                print(
                    "WARNING: utau_blending (Menter-Esch eqs. 15/16) is not applied; "
                    "near-wall omega uses eq. 14 only",
                    flush=True,
                )

    def _bind(self, coeffs: CoefficientSet) -> None:
        self._coeffs = coeffs
        self._blending = BlendingFunctions(coeffs)
        self._damping = ReynoldsDamping(coeffs, self._blending)
        self._diffusivity = EffectiveDiffusivity(self._blending)
        self._corrector = EddyViscosityCorrector(coeffs)

    # ── Metadata ──────────────────────────────────────────────────

    @property
    def model_name(self) -> str:
        return self.type_name

    @property
    def display_name(self) -> str:
        return "k-ω SST low-Re (Menter-Esch 2001)"

    @property
    def coeffs(self) -> CoefficientSet:
        return self._coeffs

    @property
    def params(self) -> ClosureParams:
        return self._params

    @property
    def iteration(self) -> int:
        return self._iteration

    # ── Fields ────────────────────────────────────────────────────

    def k(self) -> np.ndarray:
        return _readonly(self._k)

    def omega(self) -> np.ndarray:
        return _readonly(self._omega)

    def nut(self) -> np.ndarray:
        return _readonly(self._nut)

    def epsilon(self) -> np.ndarray:
        # Fixed 0.09, not the damped SST betaStar
        return 0.09 * self._k * self._omega

    def F1(self) -> np.ndarray:
        """Last F1 used by correct(), or F1 of the current fields."""
        if self._F1 is None:
            nu = self._transport.nu()
            CDkOmega = self._blending.cross_diffusion(
                self._disc.grad_dot(self._k, self._omega), self._omega
            )
            return self._blending.F1(
                self._k, self._omega, self._disc.wall_distance(), nu, CDkOmega
            )
        return _readonly(self._F1)

    def DkEff(self, F1) -> np.ndarray:
        """Effective diffusivity for k."""
        return self._diffusivity.DkEff(F1, self._nut, self._transport.nu())

    def DomegaEff(self, F1) -> np.ndarray:
        """Effective diffusivity for omega."""
        return self._diffusivity.DomegaEff(F1, self._nut, self._transport.nu())

    # ── Lifecycle ─────────────────────────────────────────────────

    def read(self, config: Mapping[str, Any] | None = None) -> bool:
        """
        Re-read model coefficients if they have changed.

        With no argument the configuration given at construction is re-parsed.
        An invalid value raises ConfigurationError and keeps the current set.
        """
        if config is None:
            config = self._config
        new, changed = self._coeffs.read(config)
        self._config = config
        if changed:
            self._bind(new)
            if self._params.verbose:
                print(self._coeffs.format_coeffs(self.type_name), flush=True)
        return changed

    def _near_wall_omega(self, k_w, y_w, nu_w):
        """omega = sqrt(omegaVis^2 + omegaLog^2) in wall-adjacent cells."""
        c = self._coeffs
        y_w = np.maximum(y_w, 1e-10)
        omega_vis = 6.0 * nu_w / (c.beta1 * y_w**2)
        omega_log = np.sqrt(np.maximum(k_w, 0.0)) / (c.betaStarInf**0.25 * c.kappa * y_w)
        return np.sqrt(omega_vis**2 + omega_log**2)

    def _halt(self, name: str, arr: np.ndarray) -> None:
        self._halted = True
        bad = int(np.count_nonzero(~np.isfinite(arr)))
        raise FieldDivergenceError(
            f"{name} is not finite after bounding at iteration {self._iteration} "
            f"({bad} local cells); turbulence correction halted"
        )

    def _warn_unconverged(self, info: SolveInfo, report: CorrectionReport) -> None:
        if info.converged:
            return
        msg = (
            f"{info.name} linear solve not converged after {info.iterations} "
            f"iterations (residual {fmt_sci(info.residual, prec=2)}); "
            "accepting partial solution"
        )
        report.warnings.append(msg)
        if self._params.verbose:
            print(f"WARNING: {msg}", flush=True)

    def correct(self) -> CorrectionReport:
        """
        Solve the omega and k equations, then correct the eddy viscosity.

        Strict sequence: strain invariants -> CDkOmega -> F1 -> effective
        diffusivities -> omega -> k -> nut.

        Raises:
            FieldDivergenceError: k or omega non-finite (now or in an
                earlier call of this run).
        """
        if self._halted:
            raise FieldDivergenceError(
                "turbulence correction halted after an earlier divergence"
            )
        self._iteration += 1

        c = self._coeffs
        p = self._params
        disc = self._disc
        blending = self._blending
        damping = self._damping

        nu = self._transport.nu()
        y = disc.wall_distance()
        k = self._k
        omega = self._omega

        # 1. Velocity-gradient invariants
        inv = self._momentum.strain_invariants()
        S2 = np.maximum(inv.S2, 0.0)
        GbyNu = np.maximum(inv.GbyNu, 0.0)

        # 2. Cross-diffusion
        CDkOmega = blending.cross_diffusion(disc.grad_dot(k, omega), omega)

        # 3. Blending
        F1 = blending.F1(k, omega, y, nu, CDkOmega)
        F23 = blending.F23(k, omega, y, nu)
        self._F1 = F1

        # 4. Effective diffusivities (with the previous nut)
        DkEff = self.DkEff(F1)
        DomegaEff = self.DomegaEff(F1)

        # 5. omega equation
        ReT = damping.ReT(k, omega, nu)
        betaStar = damping.beta_star(ReT)
        gamma = damping.alpha(F1, ReT)
        beta = blending.beta(F1)

        limiter = (c.c1 / c.a1) * betaStar * omega * np.maximum(
            c.a1 * omega, c.b1 * F23 * np.sqrt(S2)
        )
        cd_coeff = (1.0 - F1) * CDkOmega / omega
        omega_eqn = TransportEquation(
            diffusivity=DomegaEff,
            source=gamma * np.minimum(GbyNu, limiter) + np.maximum(cd_coeff, 0.0) * omega,
            implicit=beta * omega + np.maximum(-cd_coeff, 0.0),
        )

        wall_cells, wall_y = disc.near_wall_cells()
        if wall_cells.size:
            nu_w = np.broadcast_to(nu, k.shape)[wall_cells]
            omega_eqn.fixed_cells = wall_cells
            omega_eqn.fixed_values = self._near_wall_omega(k[wall_cells], wall_y, nu_w)

        omega_new, omega_info = disc.solve_transport("omega", omega, omega_eqn)
        omega_new = p.under_relax * omega_new + (1.0 - p.under_relax) * omega
        if wall_cells.size:
            omega_new[wall_cells] = omega_eqn.fixed_values
        omega_new = np.maximum(omega_new, p.omega_min)
        if not disc.all_finite(omega_new):
            self._halt("omega", omega_new)
        self._omega[:] = omega_new
        disc.update_boundaries("omega", self._omega)
        omega = self._omega

        # 6. k equation (uses the updated omega)
        ReT = damping.ReT(k, omega, nu)
        betaStar = damping.beta_star(ReT)
        k_eqn = TransportEquation(
            diffusivity=DkEff,
            source=np.minimum(self._nut * GbyNu, c.c1 * betaStar * k * omega),
            implicit=betaStar * omega,
        )
        k_new, k_info = disc.solve_transport("k", k, k_eqn)
        k_new = p.under_relax * k_new + (1.0 - p.under_relax) * k
        k_new = np.maximum(k_new, p.k_min)
        if not disc.all_finite(k_new):
            self._halt("k", k_new)
        self._k[:] = k_new
        disc.update_boundaries("k", self._k)

        # 7. Eddy viscosity
        F23 = blending.F23(self._k, self._omega, y, nu)
        self._corrector.correct(self._nut, self._k, self._omega, F23, S2, disc)

        report = CorrectionReport(iteration=self._iteration, omega=omega_info, k=k_info)
        self._warn_unconverged(omega_info, report)
        self._warn_unconverged(k_info, report)
        return report
