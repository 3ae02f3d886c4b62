# -*- coding: utf-8 -*-
"""Methods for reading from and writing to phase shift files.

Phase shift files are plain text files of the following form::

    # optional comment lines
    <n_energies> <l_max> [<unit>]
    <energy 1>
    <l_max + 1 phase shifts for energy 1>
    <energy 2>
    ...

The phase shift lines are written with a FORTRAN format which, when a value is
negative, leaves no blank between it and the preceding value, e.g.
``0.1234-0.0567``. Such lines must be read with `split_packed_reals` rather
than `str.split`.
"""
import logging
import re
import warnings
from os.path import isfile, splitext, basename
from time import time
from typing import List, Optional, Tuple

import h5py
import numpy as np
import torch
from h5py import Group
from torch import Tensor

from pyleed.common import vector_like
from pyleed.common.exceptions import (
    PhaseShiftIOError, PhaseShiftFormatError, TruncatedDataWarning)
from pyleed.data import hdf_suffix
from pyleed.data.units import energy_scale, energy_units, unit_name

logger = logging.getLogger(__name__)

# A real number, with E or FORTRAN D style exponent, preceded by blanks
_real = re.compile(r'\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eEdD][+-]?\d+)?)')

# Two integers, optionally followed by a unit token
_header = re.compile(r'\s*([+-]?\d+)(?!\d)\s*([+-]?\d+)(?!\d)(?:\s*(\S+))?')

_d_to_e = str.maketrans('dD', 'eE')

# Characters that separate the numerals of a packed line
_separators = ' -'


def scan_real(text: str, pos: int = 0) -> Optional[Tuple[float, int]]:
    """Scan a single real number from ``text`` starting at ``pos``.

    Leading whitespace is skipped. Scanning stops at the first character that
    cannot extend the number, so a minus sign directly following the digits
    of one number is left to start the next.

    Arguments:
        text: string to scan.
        pos: index at which scanning begins. [DEFAULT=0]

    Returns:
        result: a tuple holding the value and the index just past the scanned
            numeral, or None if no number starts at ``pos``.

    Examples:
        >>> from pyleed.io.phaseshifts import scan_real
        >>> scan_real('1.2345-2.3456')
        (1.2345, 6)
        >>> scan_real('1.2345-2.3456', 6)
        (-2.3456, 13)
    """
    match = _real.match(text, pos)
    if match is None:
        return None
    return float(match.group(1).translate(_d_to_e)), match.end()


def split_packed_reals(text: str, count: int) -> List[float]:
    """Read ``count`` real numbers from a line of packed FORTRAN output.

    The line is scanned left to right with a cursor. After each number is
    read the cursor is moved past exactly the characters making up that
    numeral; a minus sign thus acts as a delimiter when it directly follows a
    number, while signed exponents like ``1.0E-02`` or ``1.0D-02`` are kept
    whole.

    Where no number can be scanned at the cursor the value is taken to be 0
    and the cursor skips any run of blanks & minus signs followed by any run
    of other characters. Values missing from the end of the line are 0.

    Arguments:
        text: line of text to be parsed.
        count: number of values to read.

    Returns:
        values: list of ``count`` floats.

    Examples:
        >>> from pyleed.io.phaseshifts import split_packed_reals
        >>> split_packed_reals('  0.1234-0.0567 1.0E-02', 3)
        [0.1234, -0.0567, 0.01]
    """
    values, pos, end = [], 0, len(text)
    for _ in range(count):
        if (result := scan_real(text, pos)) is not None:
            value, pos = result
        else:
            value = 0.
            while pos < end and text[pos] in _separators:
                pos += 1
            while pos < end and text[pos] not in _separators:
                pos += 1
        values.append(value)
    return values


def _parse_header(line: str, path: str) -> Tuple[int, int, Optional[str]]:
    """Parse the energy count, ℓ_max and unit token from a header line."""
    if (match := _header.match(line)) is None:
        raise PhaseShiftFormatError(
            f'improper input line in file "{path}"', path, line)

    n_eng, l_max = int(match.group(1)), int(match.group(2))
    unit = match.group(3)
    if n_eng < 0 or l_max < 0:
        raise PhaseShiftFormatError(
            'negative energy count or maximum angular momentum in file '
            f'"{path}"', path, line)

    return n_eng, l_max, unit


class PhaseShifts:
    r"""A table of phase shifts indexed by energy and angular momentum.

    This class handles the parsing of phase shift files, and their binary
    analogs. Each instance represents a single scattering site, i.e. the
    phase shifts of one chemical species in one structural environment, for
    a given displacement of that site.

    Arguments:
        energies: Energies, in Hartree, at which the phase shifts are
            tabulated.
        phase_shifts: A n×(ℓ_max+1) tensor holding the phase shifts; where n
            iterates over the energies.
        displacement: Four element displacement vector associated with the
            table. Element 0 is unused, elements 1-3 hold the x, y & z
            components. [DEFAULT=zeros]
        source_path: Path of the file the table was read from. [DEFAULT=None]
        n_declared: The number of energies declared in the source file, if
            this differs from the number actually read. [DEFAULT=None]
        energy_min: Lower energy bound. [DEFAULT=first energy]
        energy_max: Upper energy bound. [DEFAULT=last energy]

    Examples:
        >>> from pyleed.io.phaseshifts import PhaseShifts
        >>> phs = PhaseShifts.read('/opt/leed/phase/Ni.phs')
        >>> print(phs.n_energies, phs.l_max)
        40 8

    Notes:
        Energy bounds are those observed while the file was read: the first
        energy read becomes ``energy_min`` and the last fully read energy
        becomes ``energy_max``. No comparison is made between the values, so
        for a file whose energies are not in ascending order these are not
        the true extrema.

        Instances should be treated as immutable, as they are shared between
        all calculations that request the same table.

    Raises:
        ValueError: if the shapes of ``energies``, ``phase_shifts`` and
            ``displacement`` are inconsistent.

    """

    # HDF5 version number. Updated when introducing a change that would
    # break backwards compatibility with previously created HDF5 files.
    version = '0.1'

    def __init__(
            self, energies: Tensor, phase_shifts: Tensor,
            displacement: Optional[vector_like] = None,
            source_path: Optional[str] = None,
            n_declared: Optional[int] = None,
            energy_min: Optional[float] = None,
            energy_max: Optional[float] = None):

        if phase_shifts.dim() != 2 or phase_shifts.shape[-1] < 1:
            raise ValueError(
                '"phase_shifts" must be a n×(ℓ_max+1) tensor with ℓ_max ≥ 0')

        if phase_shifts.shape[0] != len(energies):
            raise ValueError(
                f'Found {len(energies)} energies but {phase_shifts.shape[0]} '
                'rows of phase shifts')

        if displacement is None:
            displacement = torch.zeros(4, dtype=energies.dtype,
                                       device=energies.device)
        else:
            displacement = torch.as_tensor(
                displacement, dtype=energies.dtype,
                device=energies.device).clone()
            if displacement.shape != (4,):
                raise ValueError(
                    'Displacement vectors must hold exactly four values')

        self._energies = energies
        self._phase_shifts = phase_shifts
        self._displacement = displacement
        self._source_path = source_path
        self._n_declared = len(energies) if n_declared is None else n_declared

        if len(energies) != 0:
            energy_min = float(energies[0]) if energy_min is None \
                else energy_min
            energy_max = float(energies[-1]) if energy_max is None \
                else energy_max

        self._energy_min = energy_min
        self._energy_max = energy_max

    @property
    def energies(self) -> Tensor:
        """Energies, in Hartree, in the order they were read."""
        return self._energies

    @property
    def phase_shifts(self) -> Tensor:
        """Phase shifts as a n_energies×n_channels tensor."""
        return self._phase_shifts

    @property
    def displacement(self) -> Tensor:
        """The four element displacement vector, element 0 unused."""
        return self._displacement

    @property
    def source_path(self) -> Optional[str]:
        return self._source_path

    @property
    def l_max(self) -> int:
        """Maximum angular momentum quantum number."""
        return self._phase_shifts.shape[-1] - 1

    @property
    def n_channels(self) -> int:
        """Number of angular momentum channels, i.e. ℓ_max + 1."""
        return self._phase_shifts.shape[-1]

    @property
    def n_energies(self) -> int:
        """Number of energies actually read."""
        return len(self._energies)

    @property
    def n_declared(self) -> int:
        """Number of energies declared by the source file's header."""
        return self._n_declared

    @property
    def truncated(self) -> bool:
        """True if fewer energies were read than were declared."""
        return self.n_energies != self._n_declared

    @property
    def energy_min(self) -> Optional[float]:
        return self._energy_min

    @property
    def energy_max(self) -> Optional[float]:
        return self._energy_max

    def matches(self, path: str, displacement: vector_like,
                tolerance: float) -> bool:
        """Check if this table satisfies a request for a path/displacement.

        Arguments:
            path: the requested file path; this must exactly match the
                ``source_path`` of the table.
            displacement: the requested four element displacement vector.
            tolerance: absolute tolerance within which each of the x, y and z
                displacement components must agree.

        Returns:
            is_match: True if the table is the one requested.

        Raises:
            ValueError: if ``displacement`` does not hold four values.
        """
        displacement = torch.as_tensor(
            displacement, dtype=self._displacement.dtype,
            device=self._displacement.device)
        if displacement.shape != (4,):
            raise ValueError(
                'Displacement vectors must hold exactly four values')

        if path != self._source_path:
            return False

        return bool(((displacement[1:4] - self._displacement[1:4]).abs()
                     < tolerance).all())

    @classmethod
    def read(cls, path: str, displacement: Optional[vector_like] = None,
             name: Optional[str] = None, **kwargs) -> 'PhaseShifts':
        """Parse phase shift data from phs files and their binary analogs.

        Arguments:
            path: Path to the file that is to be read (.phs or .hdf5).
            displacement: Displacement vector to associate with the table.
                When reading from an HDF5 file this overrides any stored
                displacement. [DEFAULT=None]
            name: Name of the group to read. This is only used when reading
                from an HDF5 file with more than one entry. [DEFAULT=None]

        Keyword Arguments:
            device: Device on which to place tensors. [DEFAULT=None]
            dtype: dtype to be used for floating point tensors. [DEFAULT=None]

        Returns:
            phase_shifts: `PhaseShifts` object containing all data parsed
                from the specified file.
        """
        if splitext(path)[1].lstrip('.') not in hdf_suffix:
            # Issue a warning if the user specifies `name` for a phs file
            if name is not None:
                warnings.warn('"name" argument is only used when reading '
                              'from HDF5 files with multiple entries.')

            return cls.from_phs(path, displacement, **kwargs)

        if not isfile(path):  # Verify the target file exists
            raise PhaseShiftIOError(f'could not open file "{path}"', path)

        with h5py.File(path, 'r') as db:
            if name is None:
                # If only one entry exists then assume it's the target; if
                # multiple entries exist then it's impossible to know which
                # the user wanted.
                if len(entries := list(db)) == 1:
                    name = entries[0]
                else:
                    raise ValueError('Use name when database have more than '
                                     f'one entry: {basename(path)}')

            return cls.from_hdf5(db[name], displacement=displacement,
                                 source_path=path, **kwargs)

    @classmethod
    def from_phs(cls, path: str, displacement: Optional[vector_like] = None,
                 dtype: Optional[torch.dtype] = None,
                 device: Optional[torch.device] = None) -> 'PhaseShifts':
        """Parse a phase shift file into a `PhaseShifts` instance.

        Arguments:
            path: Path to the target phs file.
            displacement: Displacement vector associated with the table.
                [DEFAULT=None]
            device: Device on which to place tensors. [DEFAULT=None]
            dtype: dtype to be used for floating point tensors. [DEFAULT=None]

        Returns:
            phase_shifts: the parsed table. If the file ends before all of
                the declared energies have been read, the table holds only
                those energies which were read in full.

        Raises:
            PhaseShiftIOError: if the file cannot be opened.
            PhaseShiftFormatError: if the header line is missing or malformed,
                or if an energy line holds no number.

        Warns:
            TruncatedDataWarning: if fewer energies are found than declared.
        """
        logger.debug('reading file "%s"', path)

        try:
            stream = open(path, 'r')
        except OSError as error:
            raise PhaseShiftIOError(
                f'could not open file "{path}"', path) from error

        with stream:
            # Skip over the comment lines
            while (line := stream.readline()) and line.startswith('#'):
                pass

            if not line:
                raise PhaseShiftFormatError(
                    f'unexpected EOF found while reading file "{path}"', path)

            n_eng, l_max, unit = _parse_header(line, path)
            scale = energy_scale(unit)
            logger.debug('Energy input in %s', unit_name(unit))

            # The declared count only bounds the loop; rows are appended as read
            n_l = l_max + 1
            energies, shifts = [], []
            eng_min = eng_max = None

            while len(energies) < n_eng and (line := stream.readline()):
                energy = scan_real(line)
                value = 0. if energy is None else energy[0] * scale

                # The first energy is taken as the minimum, & every one after
                # it replaces the maximum.
                if not energies:
                    eng_min = value
                else:
                    eng_max = value

                if not (shift_line := stream.readline()):
                    if energies:
                        eng_max = energies[-1]
                    break

                if energy is None:
                    raise PhaseShiftFormatError(
                        f'could not read energy from file "{path}"',
                        path, line)

                energies.append(value)
                shifts.append(split_packed_reals(shift_line, n_l))

        i_eng = len(energies)

        if i_eng == 0:
            eng_min = eng_max = None
        elif eng_max is None:
            eng_max = eng_min

        logger.debug('Number of energies = %d, lmax = %d', i_eng, l_max)

        phase_shifts = cls(
            torch.tensor(np.array(energies, dtype=np.float64),
                         dtype=dtype, device=device),
            torch.tensor(np.array(shifts, dtype=np.float64).reshape(-1, n_l),
                         dtype=dtype, device=device),
            displacement=displacement, source_path=path, n_declared=n_eng,
            energy_min=eng_min, energy_max=eng_max)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug('\n%s', phase_shifts.table())

        if i_eng != n_eng:
            warnings.warn(TruncatedDataWarning(n_eng, i_eng, path),
                          stacklevel=2)

        return phase_shifts

    @classmethod
    def from_hdf5(cls, source: Group,
                  displacement: Optional[vector_like] = None,
                  source_path: Optional[str] = None,
                  dtype: Optional[torch.dtype] = None,
                  device: Optional[torch.device] = None) -> 'PhaseShifts':
        """Instantiate a `PhaseShifts` instance from an HDF5 group.

        Arguments:
            source: An HDF5 group containing phase shift data.
            displacement: Overrides the stored displacement. [DEFAULT=None]
            source_path: Overrides the stored source path. [DEFAULT=None]
            device: Device on which to place tensors. [DEFAULT=None]
            dtype: dtype to be used for floating point tensors. [DEFAULT=None]

        Returns:
            phase_shifts: The resulting `PhaseShifts` object.
        """
        dd = {'dtype': dtype, 'device': device}

        def tt(name):
            return torch.tensor(np.asarray(source[name][()]), **dd)

        def opt(name):
            value = float(source.attrs[name])
            return None if np.isnan(value) else value

        if displacement is None:
            displacement = tt('displacement')

        if source_path is None:
            source_path = str(source.attrs['source_path']) or None

        return cls(tt('energies'), tt('phase_shifts'),
                   displacement=displacement, source_path=source_path,
                   n_declared=int(source.attrs['n_declared']),
                   energy_min=opt('energy_min'),
                   energy_max=opt('energy_max'))

    def write(self, path: str, overwrite: Optional[bool] = False,
              name: Optional[str] = None):
        """Save the phase shift data to a file.

        The target file can be either a phs file or a hdf5 database. Desired
        file format will be inferred from the file's name.

        Arguments:
            path: path to the file in which the data is to be saved.
            overwrite: Existing phs-files/HDF5-groups can only be overwritten
                when ``overwrite`` is True. [DEFAULT=False]
            name: name of the HDF5 group to write to. By default this is the
                stem of ``source_path``. [DEFAULT=None]

        """
        if splitext(path)[1].lstrip('.') not in hdf_suffix:
            if isfile(path) and not overwrite:
                raise FileExistsError(
                    'File already exists; use "overwrite" to permit '
                    'overwriting.')
            self.to_phs(path)

        else:  # Otherwise it must be an HDF5 file
            if name is None:
                name = splitext(basename(self._source_path or 'phase'))[0]

            with h5py.File(path, 'a') as db:
                if name in db:
                    if not overwrite:
                        raise FileExistsError(
                            f'Entry {name} already exists; use "overwrite" '
                            'to permit overwriting.')
                    else:
                        del db[name]
                self.to_hdf5(db.create_group(name))

    def to_phs(self, path: str, unit: str = 'Ha'):
        """Writes data to a phs formatted file.

        Unlike the FORTRAN programs that generate phase shift files, values
        are always separated by at least one blank.

        Arguments:
            path: path specifying the location of the phs file.
            unit: energy unit to write the energies in; one of "Ha", "eV" or
                "Ry". [DEFAULT="Ha"]
        """
        if unit[:2].lower() not in energy_units:
            raise KeyError(f'Unknown energy unit "{unit}"')

        energies = self._energies.detach().cpu().numpy() / energy_scale(unit)
        shifts = self._phase_shifts.detach().cpu().numpy()

        with open(path, 'w') as stream:
            if self._source_path is not None:
                stream.write(f'# converted from {self._source_path}\n')
            stream.write(f'{self.n_energies} {self.l_max} {unit}\n')
            for energy, row in zip(energies, shifts):
                stream.write(f'{energy:16.8E}\n')
                stream.write(' '.join(f'{i:15.8E}' for i in row) + '\n')

    def to_hdf5(self, target: Group):
        """Saves the `PhaseShifts` instance into a target HDF5 Group.

        Arguments:
            target: The hdf5 group to which the data should be saved.

        Notes:
            This function does not create its own group as it expects that
            ``target`` is the group into which data should be written.
        """
        def t2n(t: Tensor) -> np.ndarray:
            """Convert torch tensor to a numpy array."""
            return t.detach().cpu().numpy()

        def n2f(value: Optional[float]) -> float:
            return np.nan if value is None else value

        target.attrs.update(
            {'version': self.version, 'l_max': self.l_max,
             'n_declared': self._n_declared,
             'source_path': self._source_path or '',
             'energy_min': n2f(self._energy_min),
             'energy_max': n2f(self._energy_max)})

        target.create_dataset('energies', data=t2n(self._energies))
        target.create_dataset('phase_shifts', data=t2n(self._phase_shifts))
        target.create_dataset('displacement', data=t2n(self._displacement))
        target.create_dataset('time_created', data=time())

    def table(self) -> str:
        """Tabulate the phase shifts against energy.

        Energies are given in Hartree; zero valued phase shifts are shown as
        "--".
        """
        header = '\t  E(H)' + ''.join(
            f'\t  l={i:2d}' for i in range(self.n_channels))
        rows = [header, '']
        for energy, row in zip(self._energies.tolist(),
                               self._phase_shifts.tolist()):
            rows.append(f'\t{energy:7.4f}' + ''.join(
                f'\t{i:7.4f}' if i != 0. else '\t   --  ' for i in row))
        return '\n'.join(rows)

    def __str__(self) -> str:
        """Returns a string representing the `PhaseShifts` object."""
        cls_name = self.__class__.__name__
        name = basename(self._source_path) if self._source_path else '?'
        dr = ', '.join(f'{i:.4f}' for i in self._displacement[1:].tolist())
        truncated = 'Yes' if self.truncated else 'No'
        return f'{cls_name}({name}, energies: {self.n_energies}, ' \
               f'l_max: {self.l_max}, dr: ({dr}), truncated: {truncated})'

    def __repr__(self) -> str:
        """Returns a simple string representation of the `PhaseShifts`."""
        cls_name = self.__class__.__name__
        name = basename(self._source_path) if self._source_path else '?'
        return f'{cls_name}({name})'
