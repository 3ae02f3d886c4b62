# -*- coding: utf-8 -*-
"""Configuration of the phase shift search path.

The directory in which phase shift files are sought is supplied by the
environment rather than by the calling code. Historically this is the
``CLEED_PHASE`` environment variable; a ``[phase]`` table of a TOML file can
be used instead, e.g.

.. code-block:: toml

    [phase]
    phase_path = "/opt/leed/phase"
    tolerance = 1e-4

"""
import os
from typing import Mapping, Optional

import tomli as toml
from pydantic import BaseModel, ValidationError, field_validator

from pyleed.common.exceptions import ConfigurationError
from pyleed.data.units import geo_tolerance

#: Name of the environment variable holding the phase shift directory.
PHASE_ENV = 'CLEED_PHASE'


class PhaseConfig(BaseModel):
    """Settings controlling where, and how, phase shifts are loaded."""

    phase_path: Optional[str] = None
    """Directory searched for phase shift files given by logical name"""
    tolerance: float = geo_tolerance
    """Absolute tolerance used when comparing displacement vectors"""

    @field_validator('phase_path')
    @classmethod
    def _check_phase_path(cls, value: Optional[str]) -> Optional[str]:
        # An empty directory name would resolve files against the root
        return value or None

    @field_validator('tolerance')
    @classmethod
    def _check_tolerance(cls, value: float) -> float:
        if value < 0:
            raise ValueError('Tolerance value cannot be negative')
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None
                 ) -> 'PhaseConfig':
        """Build a configuration from the process environment.

        Arguments:
            environ: mapping to read from in place of `os.environ`.
                [DEFAULT=None]

        Returns:
            config: configuration whose ``phase_path`` is the value of the
                ``CLEED_PHASE`` variable, or None if it is not set.
        """
        environ = os.environ if environ is None else environ
        return cls(phase_path=environ.get(PHASE_ENV) or None)

    @classmethod
    def from_toml(cls, path: str) -> 'PhaseConfig':
        """Build a configuration from the ``[phase]`` table of a TOML file.

        Arguments:
            path: path to the TOML file.

        Raises:
            ConfigurationError: if the file cannot be parsed or holds invalid
                settings.
        """
        with open(path, 'rb') as fd:
            try:
                table = toml.load(fd).get('phase', {})
            except toml.TOMLDecodeError as error:
                raise ConfigurationError(
                    f'Could not parse configuration file "{path}"') from error
        try:
            return cls(**table)
        except ValidationError as error:
            raise ConfigurationError(
                f'Invalid [phase] settings in "{path}": {error}') from error

    def require_phase_path(self) -> str:
        """Return the phase shift directory, raising if none is configured.

        Raises:
            ConfigurationError: if no phase shift directory is available.
        """
        if not self.phase_path:
            raise ConfigurationError(
                f'environment variable {PHASE_ENV} not defined')
        return self.phase_path
