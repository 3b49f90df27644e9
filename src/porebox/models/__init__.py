"""Primary variables, volume variables, flux variables, local residuals and phase
switching of the box models.

Two models are provided:

1. :class:`~porebox.models.models.OnePTwoCModel`: single-phase flow and transport of
   two components, in a mass or a mole formulation.
2. :class:`~porebox.models.models.PvsModel`: compositional multi-phase flow with
   primary variable switching and an optional energy balance.

"""
