# -*- coding: utf-8 -*-
"""A cache of the phase shift tables used by a diffraction calculation.

Every scattering site in a LEED calculation refers to a phase shift table by
name, together with the displacement of that site. Many sites share the same
table, and so tables are loaded once, stored in a `PhaseShiftRepository`, and
referred to thereafter by their index within it.
"""
import logging
import os
import threading
from typing import Iterable, Iterator, List, Optional, Tuple

import torch

from pyleed.common import vector_like
from pyleed.common.config import PhaseConfig
from pyleed.data import hdf_suffix
from pyleed.data.units import geo_tolerance
from pyleed.io.phaseshifts import PhaseShifts

logger = logging.getLogger(__name__)


class PhaseShiftRepository:
    """An append-only, identity keyed, store of phase shift tables.

    Tables are identified by the path of the file they were read from and by
    the displacement vector associated with them. Requesting a table that is
    already present returns the index of the existing table, otherwise the
    file is parsed and the new table is appended. Tables are never removed or
    modified, thus an index remains valid for the lifetime of the repository.

    A single repository should be created for, and passed explicitly to, all
    parts of a calculation that are to share tables.

    Arguments:
        phase_path: Directory in which phase shift files that are requested by
            name, rather than by absolute path, are located. [DEFAULT=None]
        tolerance: Absolute tolerance within which displacement vectors are
            considered to be equal. [DEFAULT=1E-4]

    Keyword Arguments:
        device: Device on which to place tensors. [DEFAULT=None]
        dtype: dtype to be used for floating point tensors. [DEFAULT=None]

    Examples:
        >>> from pyleed.structures.repository import PhaseShiftRepository
        >>> repository = PhaseShiftRepository('/opt/leed/phase')
        >>> repository.resolve_or_load('Ni', [0., 0., 0., 0.])
        0
        >>> repository.resolve_or_load('/opt/leed/phase/Ni.phs', [0., 0., 0., 0.])
        0
        >>> repository.resolve_or_load('Ni', [0., 0.01, 0., 0.])
        1
        >>> repository[1].l_max
        8

    Notes:
        Lookups are performed by a linear scan over the stored tables in the
        order they were added; the first matching table is returned. The scan
        and any subsequent append take place under a lock.

    """

    def __init__(self, phase_path: Optional[str] = None,
                 tolerance: float = geo_tolerance,
                 dtype: Optional[torch.dtype] = None,
                 device: Optional[torch.device] = None):
        self.config = PhaseConfig(phase_path=phase_path, tolerance=tolerance)
        self._dd = {'dtype': dtype, 'device': device}
        self._records: List[PhaseShifts] = []
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Optional[PhaseConfig] = None, **kwargs
                    ) -> 'PhaseShiftRepository':
        """Create a repository from a `PhaseConfig` instance.

        Arguments:
            config: The configuration to use. If omitted this is taken from
                the environment via `PhaseConfig.from_env`. [DEFAULT=None]

        Keyword Arguments:
            device: Device on which to place tensors. [DEFAULT=None]
            dtype: dtype to be used for floating point tensors. [DEFAULT=None]
        """
        config = PhaseConfig.from_env() if config is None else config
        return cls(config.phase_path, config.tolerance, **kwargs)

    @property
    def tolerance(self) -> float:
        return self.config.tolerance

    @property
    def records(self) -> Tuple[PhaseShifts, ...]:
        """A snapshot of the stored tables in insertion order."""
        with self._lock:
            return tuple(self._records)

    def resolve_path(self, name: str) -> str:
        """Convert a phase shift name into the path of a file.

        Arguments:
            name: Either an absolute path, which is returned unchanged, or the
                name of a phase shift file, without its ".phs" extension, in
                the configured phase shift directory.

        Returns:
            path: path to the phase shift file.

        Raises:
            ConfigurationError: if ``name`` is not an absolute path and no
                phase shift directory has been configured.
        """
        if os.path.isabs(name):
            return name
        return f'{self.config.require_phase_path()}{os.sep}{name}.phs'

    def _as_displacement(self, displacement: vector_like) -> torch.Tensor:
        displacement = torch.as_tensor(displacement, **self._dd)
        if displacement.shape != (4,):
            raise ValueError(
                'Displacement vectors must hold exactly four values')
        return displacement

    def find(self, path: str, displacement: vector_like) -> Optional[int]:
        """Index of the first stored table matching a path/displacement pair.

        Arguments:
            path: The resolved path of the phase shift file.
            displacement: Four element displacement vector.

        Returns:
            index: index of the matching table or None if there is none.

        Raises:
            ValueError: if ``displacement`` does not hold four values.
        """
        displacement = self._as_displacement(displacement)
        with self._lock:
            for index, record in enumerate(self._records):
                if record.matches(path, displacement, self.tolerance):
                    return index
        return None

    def resolve_or_load(self, name: str, displacement: vector_like) -> int:
        """Get the index of a phase shift table, loading it if necessary.

        Arguments:
            name: Absolute path to, or name of, the phase shift file. See
                `resolve_path` for details.
            displacement: Four element displacement vector; element 0 is
                unused while elements 1-3 hold the x, y & z displacements.

        Returns:
            index: position of the table within the repository.

        Raises:
            ValueError: if ``displacement`` does not hold four values.
            ConfigurationError: if a file is requested by name while no phase
                shift directory has been configured.
            PhaseShiftIOError: if the file cannot be opened.
            PhaseShiftFormatError: if the file's contents are malformed.

        Warns:
            TruncatedDataWarning: if the file ends prematurely. The partial
                table is stored and its index returned.
        """
        displacement = self._as_displacement(displacement)
        path = self.resolve_path(name)

        with self._lock:
            if (index := self.find(path, displacement)) is not None:
                return index

            logger.debug('reading file "%s", i_phase = %d',
                         path, len(self._records))

            # HDF5 databases may only be given by absolute path
            if os.path.splitext(path)[1].lstrip('.') in hdf_suffix:
                record = PhaseShifts.read(path, displacement, **self._dd)
            else:
                record = PhaseShifts.from_phs(path, displacement, **self._dd)

            self._records.append(record)
            return len(self._records) - 1

    def load_many(self, requests: Iterable[Tuple[str, vector_like]]
                  ) -> List[int]:
        """Resolve a series of name/displacement pairs; see `resolve_or_load`.
        """
        return [self.resolve_or_load(name, dr) for name, dr in requests]

    def __getitem__(self, index: int) -> PhaseShifts:
        with self._lock:
            return self._records[index]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[PhaseShifts]:
        return iter(self.records)

    def __repr__(self) -> str:
        """Returns a simple string representation of the repository."""
        return f'{self.__class__.__name__}({len(self)} tables)'
