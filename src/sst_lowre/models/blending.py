"""
SST blending functions F1, F2, F3, F23 and the blended coefficients.

Subscript 1 denotes the near-wall (k-omega) value, subscript 2 the far-field
(transformed k-epsilon) value. Diffusion numbers are blended as
alpha = 1/sigma rather than sigma itself: only the alpha form is consistent
with the k-epsilon/k-omega transformation.
"""

import numpy as np

from sst_lowre.config import CoefficientSet

# Floors for the blending arguments
Y_MIN = 1e-10
CD_K_OMEGA_MIN = 1e-10
SMALL = 1e-15


def blend(F, psi1, psi2):
    """Linear interpolation F*(psi1 - psi2) + psi2: psi1 at F=1, psi2 at F=0."""
    return F * (psi1 - psi2) + psi2


class BlendingFunctions:
    """Near-wall/far-field indicators and blended two-regime coefficients."""

    def __init__(self, coeffs: CoefficientSet):
        self.coeffs = coeffs

    # ── Indicators ────────────────────────────────────────────────

    def cross_diffusion(self, grad_k_dot_grad_omega, omega):
        """CDkOmega = 2/sigmaOmega2 * grad(k).grad(omega) / omega."""
        omega_safe = np.maximum(omega, SMALL)
        return 2.0 / self.coeffs.sigmaOmega2 * grad_k_dot_grad_omega / omega_safe

    def F1(self, k, omega, y, nu, CDkOmega):
        c = self.coeffs
        k_safe = np.maximum(k, 0.0)
        omega_safe = np.maximum(omega, SMALL)
        y_safe = np.maximum(y, Y_MIN)
        CDkOmegaPlus = np.maximum(CDkOmega, CD_K_OMEGA_MIN)

        arg1 = np.minimum(
            np.maximum(
                np.sqrt(k_safe) / (c.betaStarInf * omega_safe * y_safe),
                500.0 * nu / (y_safe**2 * omega_safe),
            ),
            4.0 * k_safe / (c.sigmaOmega2 * CDkOmegaPlus * y_safe**2),
        )
        return np.clip(np.tanh(np.minimum(arg1, 10.0) ** 4), 0.0, 1.0)

    def F2(self, k, omega, y, nu):
        c = self.coeffs
        k_safe = np.maximum(k, 0.0)
        omega_safe = np.maximum(omega, SMALL)
        y_safe = np.maximum(y, Y_MIN)

        arg2 = np.maximum(
            2.0 * np.sqrt(k_safe) / (c.betaStarInf * omega_safe * y_safe),
            500.0 * nu / (y_safe**2 * omega_safe),
        )
        return np.clip(np.tanh(np.minimum(arg2, 100.0) ** 2), 0.0, 1.0)

    def F3(self, omega, y, nu):
        """Hellsten rough-wall term; identically zero unless the F3 switch is on."""
        omega = np.asarray(omega, dtype=float)
        if not self.coeffs.F3:
            return np.zeros_like(omega)
        omega_safe = np.maximum(omega, SMALL)
        y_safe = np.maximum(y, Y_MIN)

        arg3 = np.minimum(150.0 * nu / (omega_safe * y_safe**2), 10.0)
        return np.clip(1.0 - np.tanh(arg3**4), 0.0, 1.0)

    def F23(self, k, omega, y, nu):
        """Composite indicator fed to the stress and production limiters."""
        F23 = self.F2(k, omega, y, nu)
        if self.coeffs.F3:
            F23 = np.maximum(F23, self.F3(omega, y, nu))
        return F23

    # ── Blended coefficients ──────────────────────────────────────

    def alpha_inf(self, F1):
        return blend(F1, self.coeffs.gamma1, self.coeffs.gamma2)

    def beta(self, F1):
        # Incompressible: beta = betaI
        return blend(F1, self.coeffs.beta1, self.coeffs.beta2)

    def sigma_k(self, F1):
        c = self.coeffs
        return 1.0 / blend(F1, 1.0 / c.sigmaK1, 1.0 / c.sigmaK2)

    def sigma_omega(self, F1):
        c = self.coeffs
        return 1.0 / blend(F1, 1.0 / c.sigmaOmega1, 1.0 / c.sigmaOmega2)
