# -*- coding: utf-8 -*-
"""Unit conversion factors and geometric tolerances.

Energies are held internally in Hartree. Note that the LEED code base this
package serves has historically used a Hartree of 27.18 eV, rather than the
CODATA value, and phase shift tables are calibrated against that value; it is
therefore retained here.

Attributes:
    hartree (float): Number of electron volts per Hartree (27.18).
    energy_units (Dict[str, float]): Factors converting energies in a given
        unit into Hartree, keyed by the lower-case two letter prefix of the
        unit's name as it appears in phase shift file headers.
    geo_tolerance (float): Absolute tolerance below which two displacements
        are deemed identical.

"""
from typing import Dict, Optional

hartree: float = 27.18

energy_units: Dict[str, float] = {
    'ev': 1. / hartree,
    'ry': 2. / hartree,
    'ha': 1.,
}

geo_tolerance: float = 1E-4


def energy_scale(token: Optional[str]) -> float:
    """Energy scaling factor associated with a phase shift file unit token.

    Only the first two characters of the token are significant and comparison
    is case-insensitive. Unknown or absent tokens are taken to be in Hartree.

    Arguments:
        token: unit token, e.g. "eV", "Ry", "RYD" or None.

    Returns:
        scale: factor that converts values in the specified unit to Hartree.

    Examples:
        >>> from pyleed.data.units import energy_scale
        >>> energy_scale('EV') == 1 / 27.18
        True
        >>> energy_scale('hartree')
        1.0
    """
    if not token:
        return 1.
    return energy_units.get(token[:2].lower(), 1.)


def unit_name(token: Optional[str]) -> str:
    """Human readable name of the unit selected by ``token``."""
    return {'ev': 'eV', 'ry': 'Rydberg (13.59 eV)'}.get(
        (token or '')[:2].lower(), 'Hartree (27.18 eV)')
