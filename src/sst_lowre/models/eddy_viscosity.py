"""
SST eddy-viscosity limiter.

    nut = a1*k / max(a1*omega, b1*F23*sqrt(S2))

Reduces to k/omega where the strain is weak; caps nut in stagnation and
high-strain regions where Bradshaw's assumption (-u'v' = a1*k) is violated.
"""

import numpy as np

from sst_lowre.config import CoefficientSet
from sst_lowre.models.blending import SMALL


class EddyViscosityCorrector:
    def __init__(self, coeffs: CoefficientSet):
        self.coeffs = coeffs

    def compute(self, k, omega, F23, S2):
        """Limited eddy viscosity (new array)."""
        a1 = self.coeffs.a1
        b1 = self.coeffs.b1
        denominator = np.maximum(
            a1 * np.maximum(omega, 0.0),
            b1 * F23 * np.sqrt(np.maximum(S2, 0.0)),
        )
        nut = a1 * np.maximum(k, 0.0) / np.maximum(denominator, SMALL)
        return np.maximum(nut, 0.0)

    def correct(self, nut, k, omega, F23, S2, discretization=None):
        """Overwrite `nut` in place and refresh its boundary values."""
        nut[:] = self.compute(k, omega, F23, S2)
        if discretization is not None:
            discretization.update_boundaries("nut", nut)
        return nut
