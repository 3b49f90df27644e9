"""The compositional subpackage provides the thermodynamic layer of the box models:
fluid states, fluid systems and constraint solvers for phase equilibria.

1. :mod:`porebox.compositional.fluid_state` stores the thermodynamic state of a fluid
   in a single control volume.
2. :mod:`porebox.compositional.fluid_system` defines the interface to the constitutive
   relations of a fluid mixture, and contains two fluid systems.
3. :mod:`porebox.compositional.constraint_solvers` computes phase compositions such
   that the fugacities of all components are equal across phases.

.. rubric:: Some additional information.

    1. Units are standard SI units. Densities and enthalpies are given per mass, molar
       values are derived using the molar masses of the components.
    2. Failures of the constraint solvers are signalled with
       :class:`~porebox.compositional.utils.ConstraintSolverError`, which a nonlinear
       solver can treat as a request to reduce its update.

"""

__all__ = []

from . import _core, constraint_solvers, fluid_state, fluid_system, utils
from ._core import *
from .constraint_solvers import *
from .fluid_state import *
from .fluid_system import *
from .utils import *

__all__.extend(_core.__all__)
__all__.extend(utils.__all__)
__all__.extend(fluid_state.__all__)
__all__.extend(fluid_system.__all__)
__all__.extend(constraint_solvers.__all__)
