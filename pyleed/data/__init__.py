# -*- coding: utf-8 -*-
"""Constants & reference data required by PyLEED is stored in the data module.

The data module stores any static data needed by PyLEED or its users. This
includes, but is not limited to, constants, conversion factors and tolerances.
Attributes present in the module level namespace (:mod:`data`) are documented
here. However, those stored in sub-domains, such as :mod:`.units`, are
documented in their respective module sections.

Attributes:
    hdf_suffix (List[str]): All the allowed suffixes of binary hdf files.

"""
from typing import List

from pyleed.data.units import hartree, energy_units, geo_tolerance

hdf_suffix: List[str] = ['HD', 'Hd', 'hd', 'HDF', 'Hdf', 'hdf', 'HDF5', 'Hdf5',
                         'hdf5', 'H5', 'h5']
