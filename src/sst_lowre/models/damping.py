"""
Low-Reynolds-number damping of the SST coefficients.

All corrections are functions of the turbulent Reynolds number
ReT = k/(nu*omega) and recover the high-Re SST values as ReT -> inf.
Reference: Fluent v15 Theory Guide, sec. 4.4.2 (low-Re corrections).
"""

import numpy as np

from sst_lowre.config import ALPHA_OMEGA_ZERO, CoefficientSet
from sst_lowre.models.blending import SMALL, BlendingFunctions


class ReynoldsDamping:
    """ReT-based alphaStar, betaStar and alpha."""

    def __init__(self, coeffs: CoefficientSet, blending: BlendingFunctions | None = None):
        self.coeffs = coeffs
        self.blending = blending if blending is not None else BlendingFunctions(coeffs)

    def ReT(self, k, omega, nu):
        return np.maximum(k, 0.0) / np.maximum(nu * omega, SMALL)

    def alpha_star(self, ReT):
        c = self.coeffs
        r = ReT / c.RK
        return c.alphaStarInf * (c.alphaZero + r) / (1.0 + r)

    def beta_star(self, ReT):
        c = self.coeffs
        r4 = (ReT / c.RBeta) ** 4
        return c.betaStarInf * (4.0 / 15.0 + r4) / (1.0 + r4)

    def alpha(self, F1, ReT):
        """omega production coefficient: alphaInf(F1)/alphaStar * low-Re factor.

        Deliberately the Fluent v15 form (division by alphaStar, alpha0 = 1/9),
        not the blend(F1, gamma1, gamma2) * alphaStar variant; both recover
        alphaInf(F1) as ReT -> inf.
        """
        r = ReT / self.coeffs.ROmega
        damping = (ALPHA_OMEGA_ZERO + r) / (1.0 + r)
        return self.blending.alpha_inf(F1) / self.alpha_star(ReT) * damping
