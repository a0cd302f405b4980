"""
Turbulence model registry.

Usage:
    from sst_lowre.models import create_model
    model = create_model("kOmegaSSTLowRe", discretization=disc,
                         momentum=mom, transport=ConstantViscosity(nu),
                         k=k0, omega=omega0)
"""

from sst_lowre.models.base import (
    ConstantViscosity,
    Discretization,
    EddyViscosityModel,
    MomentumCollaborator,
    SolveInfo,
    StrainInvariants,
    TransportCollaborator,
    TransportEquation,
)
from sst_lowre.models.blending import BlendingFunctions, blend
from sst_lowre.models.damping import ReynoldsDamping
from sst_lowre.models.diffusivity import EffectiveDiffusivity
from sst_lowre.models.eddy_viscosity import EddyViscosityCorrector
from sst_lowre.models.sst_lowre import (
    CorrectionReport,
    FieldDivergenceError,
    KOmegaSSTLowRe,
)

# Keys are lower-case; lookups are case-insensitive
_REGISTRY: dict[str, type[EddyViscosityModel]] = {}


def register_model(name: str, cls: type[EddyViscosityModel]) -> None:
    """Make `cls` constructible through create_model(name, ...)."""
    key = name.lower()
    existing = _REGISTRY.get(key)
    if existing is not None and existing is not cls:
        raise ValueError(
            f"Turbulence model '{name}' already registered as {existing.__name__}"
        )
    _REGISTRY[key] = cls


def available_models() -> list[str]:
    return sorted(_REGISTRY)


def create_model(name: str, **kwargs) -> EddyViscosityModel:
    """Factory: instantiate a turbulence model by config name."""
    cls = _REGISTRY.get(name.lower())
    if cls is None:
        supported = ", ".join(available_models())
        raise ValueError(
            f"Unknown turbulence model '{name}'. Supported: {supported}"
        )
    return cls(**kwargs)


register_model(KOmegaSSTLowRe.type_name, KOmegaSSTLowRe)


__all__ = [
    "EddyViscosityModel",
    "Discretization",
    "MomentumCollaborator",
    "TransportCollaborator",
    "ConstantViscosity",
    "TransportEquation",
    "SolveInfo",
    "StrainInvariants",
    "BlendingFunctions",
    "blend",
    "ReynoldsDamping",
    "EffectiveDiffusivity",
    "EddyViscosityCorrector",
    "KOmegaSSTLowRe",
    "CorrectionReport",
    "FieldDivergenceError",
    "register_model",
    "available_models",
    "create_model",
]
