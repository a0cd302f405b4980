"""
Configuration dataclasses and model coefficients for sst-lowre.

Contains:
- k-omega-SST low-Re default coefficients (Menter & Esch 2001, Fluent v15)
- CoefficientSet with OpenFOAM-style re-read semantics
- Closure numerical parameters (floors, relaxation)
- Channel driver dataclasses (ChannelGeom, NondimParams, SolveParams)
"""

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Mapping


class ConfigurationError(ValueError):
    """Invalid model coefficient or configuration value."""


# =============================================================================
# k-omega-SST low-Re coefficients
# Reference: Menter, F., Esch, T. "Elements of Industrial Heat Transfer
#            Prediction", 16th COBEM, 2001.
#            Hellsten, A. "Some improvements in Menter's k-omega SST
#            turbulence model", AIAA-98-2554, 1998 (F3 term).
# Diffusion numbers are given in sigma form (alpha = 1/sigma).
# =============================================================================

BETA_INF = 0.072  # Low-Re reference omega destruction
BETA1 = 0.075  # Inner layer (k-omega) omega destruction
BETA2 = 0.0828  # Outer layer (k-epsilon) omega destruction
R_BETA = 8.0  # betaStar damping Reynolds number
R_K = 6.0  # alphaStar damping Reynolds number
R_OMEGA = 2.95  # alpha damping Reynolds number
BETA_STAR_INF = 0.09  # High-Re k destruction coefficient
ALPHA_STAR_INF = 1.0  # High-Re alphaStar
KAPPA = 0.41  # von Karman constant
SIGMA_OMEGA1 = 2.0
SIGMA_OMEGA2 = 1.168
SIGMA_K1 = 1.176
SIGMA_K2 = 1.0
ALPHA_ZERO = BETA_INF / 3.0  # alphaStar at ReT -> 0 (= 0.024)
A1 = 0.31  # SST stress limiter
B1 = 1.0  # Limiter F23 weight
C1 = 10.0  # Production limiter

# Wilcox low-Re alpha_0 used in the omega production damping
ALPHA_OMEGA_ZERO = 1.0 / 9.0

# OpenFOAM sub-dictionary holding the model coefficients
COEFFS_DICT_NAME = "kOmegaSSTLowReCoeffs"

_SWITCH_TRUE = {"yes", "on", "true", "y", "t"}
_SWITCH_FALSE = {"no", "off", "false", "n", "f", "none"}


def parse_switch(value: Any, *, key: str = "switch") -> bool:
    """Parse an OpenFOAM Switch (bool or yes/no/on/off/true/false/...)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _SWITCH_TRUE:
            return True
        if word in _SWITCH_FALSE:
            return False
    raise ConfigurationError(f"Invalid switch value for '{key}': {value!r}")


def _parse_positive(value: Any, *, key: str, allow_zero: bool = False) -> float:
    # bool is an int subclass; "F3: true" in a numeric slot is a typo, not 1.0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ConfigurationError(f"Malformed value for coefficient '{key}': {value!r}")
    try:
        x = float(value)
    except ValueError:
        raise ConfigurationError(
            f"Malformed value for coefficient '{key}': {value!r}"
        ) from None
    if not math.isfinite(x):
        raise ConfigurationError(f"Non-finite value for coefficient '{key}': {value!r}")
    if x < 0.0 or (x == 0.0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ConfigurationError(f"Coefficient '{key}' must be {bound}, got {x}")
    return x


@dataclass(frozen=True)
class CoefficientSet:
    """
    Named model constants of the k-omega-SST low-Re closure.

    Immutable: a re-read produces a new instance (see read()), which the
    model swaps in between outer iterations.
    """

    betaInf: float = BETA_INF
    beta1: float = BETA1
    beta2: float = BETA2
    RBeta: float = R_BETA
    RK: float = R_K
    ROmega: float = R_OMEGA
    betaStarInf: float = BETA_STAR_INF
    alphaStarInf: float = ALPHA_STAR_INF
    kappa: float = KAPPA
    sigmaOmega1: float = SIGMA_OMEGA1
    sigmaOmega2: float = SIGMA_OMEGA2
    sigmaK1: float = SIGMA_K1
    sigmaK2: float = SIGMA_K2
    alphaZero: float = ALPHA_ZERO
    a1: float = A1
    b1: float = B1
    c1: float = C1
    F3: bool = False

    @property
    def betaStar(self) -> float:
        return self.betaStarInf

    @property
    def gamma1(self) -> float:
        """Inner-layer omega production coefficient (0.5532 by default)."""
        return self.beta1 / self.betaStarInf - self.kappa**2 / (
            self.sigmaOmega1 * math.sqrt(self.betaStarInf)
        )

    @property
    def gamma2(self) -> float:
        """Outer-layer omega production coefficient (0.4403 by default)."""
        return self.beta2 / self.betaStarInf - self.kappa**2 / (
            self.sigmaOmega2 * math.sqrt(self.betaStarInf)
        )

    @classmethod
    def keys(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    def as_dict(self) -> dict[str, float | bool]:
        return dataclasses.asdict(self)

    def read(self, config: Mapping[str, Any] | None) -> tuple["CoefficientSet", bool]:
        """
        Re-read coefficients from a configuration mapping.

        Recognized keys present in `config` (or in its kOmegaSSTLowReCoeffs
        sub-dictionary) overwrite the stored value; absent keys keep it.
        Every value is validated before anything is returned, so a bad entry
        leaves the caller's current set untouched.

        Returns:
            (new_set, changed) where changed is True if any value differs.
        """
        if not config:
            return self, False
        section = config.get(COEFFS_DICT_NAME, config)
        if not isinstance(section, Mapping):
            raise ConfigurationError(
                f"'{COEFFS_DICT_NAME}' must be a mapping, got {type(section).__name__}"
            )

        updates: dict[str, float | bool] = {}
        for key in self.keys():
            if key not in section:
                continue
            raw = section[key]
            if key == "F3":
                updates[key] = parse_switch(raw, key=key)
            else:
                updates[key] = _parse_positive(raw, key=key, allow_zero=(key == "alphaZero"))

        new = dataclasses.replace(self, **updates)
        return new, new != self

    def format_coeffs(self, type_name: str = "kOmegaSSTLowRe") -> str:
        """OpenFOAM-style coefficient block, as printed at model construction."""
        lines = [f"{type_name}Coeffs", "{"]
        for key, value in self.as_dict().items():
            if isinstance(value, bool):
                text = "yes" if value else "no"
            else:
                text = f"{value:g}"
            lines.append(f"    {key:<14s}{text};")
        lines.append("}")
        return "\n".join(lines)


# =============================================================================
# Closure numerical parameters
# =============================================================================


@dataclass(frozen=True)
class ClosureParams:
    """
    Numerical parameters of the closure (not model physics).

    k_min: Floor on k after each solve (positivity)
    omega_min: Floor on omega after each solve (keeps 1/omega finite)
    under_relax: Under-relaxation for k and omega updates (1 = none)
    utau_blending: Near-wall u_tau blending (Menter-Esch eqs. 15/16).
        Kept as a switch for parity with the reference model where it is
        disabled; enabling it has no effect and prints a warning.
    verbose: Print coefficient block and solver warnings
    """

    k_min: float = 1e-10
    omega_min: float = 1e-8
    under_relax: float = 0.7
    utau_blending: bool = False
    verbose: bool = True

    def __post_init__(self):
        if self.k_min <= 0.0:
            raise ConfigurationError(f"k_min must be > 0, got {self.k_min}")
        if self.omega_min <= 0.0:
            raise ConfigurationError(f"omega_min must be > 0, got {self.omega_min}")
        if not 0.0 < self.under_relax <= 1.0:
            raise ConfigurationError(f"under_relax must be in (0, 1], got {self.under_relax}")


# =============================================================================
# Channel driver dataclasses
# =============================================================================


@dataclass(frozen=True)
class ChannelGeom:
    """Wall-normal channel geometry for the 1-D finite-volume driver."""

    Ly: float  # Channel height (delta if use_symmetry, else 2*delta)
    Ny: int  # Number of cells
    y_first: float  # First cell height from wall (for y+ control)
    growth_rate: float  # Geometric stretching ratio (>1 for wall refinement)
    stretching: str = "geometric"  # "geometric" or "tanh"
    use_symmetry: bool = True  # Half-channel with symmetry at top (default: True)


@dataclass(frozen=True)
class NondimParams:
    """Nondimensional parameters for Re_tau-based scaling."""

    Re_tau: float  # Friction Reynolds number
    use_body_force: bool = True  # f_x = 1 to drive flow


@dataclass(frozen=True)
class SolveParams:
    """
    Driver parameters.

    dt: Pseudo-time step of the k/omega transport equations
    max_iter: Max outer iterations
    steady_tol: Convergence tolerance on max(res_u, res_k, res_w)
    linear_rtol: Relative tolerance of the transport linear solves
    linear_max_iter: Iteration budget of the transport linear solves
    log_interval: Print/record every N iterations (0 = silent)
    out_dir: Output directory for results
    """

    dt: float
    max_iter: int
    steady_tol: float
    out_dir: str
    linear_rtol: float = 1e-8
    linear_max_iter: int = 500
    log_interval: int = 50
