"""   PoreBox.

Root directory for the PoreBox package, a box-scheme (vertex-centred finite volume)
kernel for multiphase, multicomponent flow and transport in porous media. Contains the
following sub-packages:

compositional: Fluid states, fluid systems and constraint solvers for phase
    equilibrium.

grids: Element-local finite-volume geometry of the box scheme.

models: Primary variables, volume variables, flux variables and local residuals of
    the 1p2c and the primary-variable-switching (PVS) models.

numerics: Local Jacobians and global assembly of residuals.

params: Material laws and boundary condition types.

utils: Constants, averaging and logging.


isort:skip_file

"""

import configparser
import os
from pathlib import Path


__version__ = "0.3.0"

# Try to read the config file from the directory where python process was launched
try:
    cwd = Path(os.getcwd())
    pth = cwd / Path("porebox.cfg")
    cfg = configparser.ConfigParser()
    cfg.read(pth)
    config = {name: dict(section) for name, section in cfg.items()}
except (OSError, configparser.Error):
    # the assumption is that no configurations are given
    config = {}

# ------------------------------------
# Simplified namespaces. The rule of thumb is that classes and modules that a
# user can be exposed to should have a shortcut here.

from porebox.utils.common_constants import *
from porebox.utils.logging import time_logger

# Thermodynamics
from porebox import compositional
from porebox.compositional import (
    CompositionalFluidState,
    ConstraintSolverError,
    CompositionalModellingError,
    FluidSystem,
    H2ON2FluidSystem,
    TracerFluidSystem,
    ComputeFromReferencePhase,
    MiscibleMultiPhaseComposition,
    AuxiliaryConstraint,
)

# Parameters
from porebox.params.bc import BoundaryType, BoundaryTypes
from porebox.params.material_laws import (
    MaterialLaw,
    NullMaterialLaw,
    LinearMaterial,
    LinearMaterialParams,
    BrooksCorey,
    BrooksCoreyParams,
    VanGenuchten,
    VanGenuchtenParams,
)

# Grids
from porebox.grids.box_geometry import (
    SubControlVolume,
    SubControlVolumeFace,
    BoundaryFace,
    ElementGeometry,
    BoxGrid,
    line_grid,
    rectangle_grid,
)

# Models
from porebox import models
from porebox.models.primary_variables import (
    PhasePresence,
    SwitchingVariable,
    PrimaryVariables,
)
from porebox.models.unit_basis import MassBasis, MoleBasis
from porebox.models.problem import Problem
from porebox.models.energy import (
    IsothermalEnergyModule,
    MultiPhaseEnergyModule,
    SomertonParams,
)
from porebox.models.volume_variables import (
    OnePTwoCVolumeVariables,
    PvsVolumeVariables,
)
from porebox.models.flux_variables import (
    OnePTwoCFluxVariables,
    OnePTwoCBoundaryVariables,
    PvsFluxVariables,
)
from porebox.models.local_residual import (
    BoxLocalResidual,
    OnePTwoCLocalResidual,
    PvsLocalResidual,
)
from porebox.models.phase_switch import PvsPhaseSwitch
from porebox.models.models import OnePTwoCModel, PvsModel

# Numerics
from porebox.numerics.local_jacobian import LocalJacobian
from porebox.numerics.assembler import AssemblyError, BoxAssembler
