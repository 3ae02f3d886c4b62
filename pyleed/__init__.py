"""The top-level directory module of the PyLEED package.

This package provides the phase shift layer of a low energy electron
diffraction (LEED) intensity calculation; i.e. the reading, unit normalisation
and caching of the phase shift tables on which such calculations depend.
"""
# Import all custom exceptions to the top level
from pyleed.common.exceptions import *

# Pull data structure classes up to the pyleed top level domain namespace
from pyleed.common.config import PhaseConfig
from pyleed.io.phaseshifts import PhaseShifts
from pyleed.structures.repository import PhaseShiftRepository
