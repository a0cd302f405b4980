"""Blended effective diffusivities of the k and omega equations."""

import numpy as np

from sst_lowre.models.blending import BlendingFunctions


class EffectiveDiffusivity:
    def __init__(self, blending: BlendingFunctions):
        self.blending = blending

    def DkEff(self, F1, nut, nu):
        """nut/sigmaK(F1) + nu"""
        return np.maximum(nut, 0.0) / self.blending.sigma_k(F1) + nu

    def DomegaEff(self, F1, nut, nu):
        """nut/sigmaOmega(F1) + nu"""
        return np.maximum(nut, 0.0) / self.blending.sigma_omega(F1) + nu
