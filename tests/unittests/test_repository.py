# -*- coding: utf-8 -*-
"""Unit tests associated with `pyleed.structures.repository`."""
import os
from concurrent.futures import ThreadPoolExecutor
from os.path import join

import pytest
import torch

from pyleed import PhaseShiftRepository, PhaseShifts, PhaseConfig
from pyleed.common.exceptions import (
    ConfigurationError, PhaseShiftIOError, PhaseShiftFormatError,
    TruncatedDataWarning)


@pytest.fixture
def load_calls(monkeypatch):
    """Records the path of every phase shift file that gets parsed."""
    calls = []
    original = PhaseShifts.from_phs

    def counting_from_phs(*args, **kwargs):
        calls.append(args[0])
        return original(*args, **kwargs)

    monkeypatch.setattr(PhaseShifts, 'from_phs', counting_from_phs)
    return calls


def test_repository_starts_empty():
    repository = PhaseShiftRepository()
    assert len(repository) == 0
    assert repository.records == ()
    assert repr(repository) == 'PhaseShiftRepository(0 tables)'


def test_cache_hit(phase_dir, load_calls):
    """Identical requests give the same index & only parse the file once."""
    repository = PhaseShiftRepository()
    path = join(phase_dir, 'Ni.phs')

    i = repository.resolve_or_load(path, [0., 0.1, 0.2, 0.3])
    j = repository.resolve_or_load(path, [0., 0.1 + 5E-5, 0.2 - 5E-5, 0.3])

    assert i == j == 0
    assert len(repository) == 1
    assert load_calls == [path]


def test_cache_ignores_element_zero(phase_dir):
    repository = PhaseShiftRepository()
    path = join(phase_dir, 'Ni.phs')
    i = repository.resolve_or_load(path, [0., 0., 0., 0.])
    j = repository.resolve_or_load(path, [9., 0., 0., 0.])
    assert i == j


@pytest.mark.parametrize('component', [1, 2, 3])
def test_cache_miss_on_displacement(phase_dir, load_calls, component):
    """Displacements beyond the tolerance give a new table."""
    repository = PhaseShiftRepository()
    path = join(phase_dir, 'Ni.phs')
    displacement = torch.zeros(4)

    i = repository.resolve_or_load(path, displacement)
    displacement[component] = 2E-4
    j = repository.resolve_or_load(path, displacement)

    assert (i, j) == (0, 1)
    assert len(load_calls) == 2
    assert repository[j].displacement[component] == 2E-4


def test_cache_miss_on_path(phase_dir):
    repository = PhaseShiftRepository()
    dr = [0., 0., 0., 0.]
    indices = [repository.resolve_or_load(join(phase_dir, name), dr)
               for name in ['Ni.phs', 'Fe.phs', 'Ni.phs', 'Fe.phs']]
    assert indices == [0, 1, 0, 1]


def test_first_match_wins(phase_dir):
    """When several tables match, the earliest one is returned."""
    repository = PhaseShiftRepository(tolerance=0.1)
    path = join(phase_dir, 'Ni.phs')
    assert repository.resolve_or_load(path, [0., 0., 0., 0.]) == 0
    assert repository.resolve_or_load(path, [0., 0.15, 0., 0.]) == 1
    assert repository.resolve_or_load(path, [0., 0.08, 0., 0.]) == 0
    assert repository.find(path, [0., 0.14, 0., 0.]) == 1
    assert repository.find(path, [0., 0.3, 0., 0.]) is None


def test_relative_names(phase_dir, load_calls):
    repository = PhaseShiftRepository(phase_dir)
    path = join(phase_dir, 'Fe.phs')
    assert repository.resolve_path('Fe') == f'{phase_dir}{os.sep}Fe.phs'
    assert repository.resolve_path(path) == path

    dr = [0., 0., 0., 0.]
    assert repository.resolve_or_load('Fe', dr) == 0
    assert repository.resolve_or_load(path, dr) == 0
    assert len(load_calls) == 1


def test_relative_name_without_phase_path(monkeypatch):
    """A missing phase directory is reported before any file is opened."""
    def fail(*args, **kwargs):
        pytest.fail('Attempted to read a file')

    monkeypatch.setattr(PhaseShifts, 'from_phs', fail)
    repository = PhaseShiftRepository()

    with pytest.raises(ConfigurationError, match='CLEED_PHASE'):
        repository.resolve_or_load('Ni', [0., 0., 0., 0.])
    assert len(repository) == 0


def test_empty_phase_path(monkeypatch):
    def fail(*args, **kwargs):
        pytest.fail('Attempted to read a file')

    monkeypatch.setattr(PhaseShifts, 'from_phs', fail)
    repository = PhaseShiftRepository(phase_path='')

    with pytest.raises(ConfigurationError):
        repository.resolve_path('Ni')
    with pytest.raises(ConfigurationError):
        repository.resolve_or_load('Ni', [0., 0., 0., 0.])


def test_from_config(phase_dir, monkeypatch):
    monkeypatch.setenv('CLEED_PHASE', phase_dir)
    repository = PhaseShiftRepository.from_config()
    assert repository.resolve_or_load('Fe', [0., 0., 0., 0.]) == 0

    config = PhaseConfig(phase_path=phase_dir, tolerance=0.5)
    repository = PhaseShiftRepository.from_config(config)
    assert repository.tolerance == 0.5


def test_fatal_errors_leave_repository_unchanged(phase_dir, tmp_path):
    repository = PhaseShiftRepository()
    dr = [0., 0., 0., 0.]

    with pytest.raises(PhaseShiftIOError):
        repository.resolve_or_load(str(tmp_path / 'missing.phs'), dr)

    bad = tmp_path / 'bad.phs'
    bad.write_text('not a header\n')
    with pytest.raises(PhaseShiftFormatError):
        repository.resolve_or_load(str(bad), dr)

    assert len(repository) == 0
    assert repository.resolve_or_load(join(phase_dir, 'Fe.phs'), dr) == 0


def test_truncated_file_is_kept(phase_dir):
    repository = PhaseShiftRepository(phase_dir)
    with pytest.warns(TruncatedDataWarning):
        index = repository.resolve_or_load('Short', [0., 0., 0., 0.])

    assert repository[index].n_energies == 2
    assert repository[index].truncated


def test_hdf5_source(phase_dir, tmp_path):
    path = str(tmp_path / 'db.h5')
    PhaseShifts.from_phs(join(phase_dir, 'Ni.phs')).write(path)

    repository = PhaseShiftRepository()
    index = repository.resolve_or_load(path, [0., 1., 2., 3.])
    record = repository[index]
    assert record.source_path == path
    assert record.l_max == 1
    assert torch.allclose(record.displacement, torch.tensor([0., 1., 2., 3.]))


def test_invalid_displacement(phase_dir):
    repository = PhaseShiftRepository()
    path = join(phase_dir, 'Ni.phs')

    # Checked even when there is nothing to compare against
    with pytest.raises(ValueError):
        repository.find(path, [0., 0., 0.])

    repository.resolve_or_load(path, [0., 0., 0., 0.])
    with pytest.raises(ValueError):
        repository.find(path, [0., 0., 0.])
    with pytest.raises(ValueError):
        repository.resolve_or_load(join(phase_dir, 'Ni.phs'), [0., 0., 0.])


def test_access(phase_dir):
    repository = PhaseShiftRepository(phase_dir)
    requests = [('Ni', [0., 0., 0., 0.]), ('Fe', [0., 0., 0., 0.]),
                ('Ni', [0., 0., 0., 0.]), ('Ni', [0., 0., 0., 1.])]
    assert repository.load_many(requests) == [0, 1, 0, 2]

    names = [os.path.basename(i.source_path) for i in repository]
    assert names == ['Ni.phs', 'Fe.phs', 'Ni.phs']
    assert repository.records[1] is repository[1]
    assert repository[-1].displacement[3] == 1.

    with pytest.raises(IndexError):
        repository[3]


def test_concurrent_requests(phase_dir, load_calls):
    """Simultaneous requests for one table must not give duplicate tables."""
    repository = PhaseShiftRepository(phase_dir)

    with ThreadPoolExecutor(max_workers=8) as pool:
        indices = list(pool.map(
            lambda _: repository.resolve_or_load('Ni', [0., 0., 0., 0.]),
            range(32)))

    assert set(indices) == {0}
    assert len(repository) == 1
    assert len(load_calls) == 1
