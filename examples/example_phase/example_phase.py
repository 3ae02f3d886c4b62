"""Loading the phase shifts of a Ni(111) surface with a displaced top layer."""

import logging
import warnings
from os.path import exists

import torch
from pyleed import PhaseShiftRepository, PhaseConfig, TruncatedDataWarning

torch.set_default_dtype(torch.float64)

# ============== #
# STEP 1: Inputs #
# ============== #

# 1.1: Search path
# ----------------
# Phase shift files requested by name are sought in the directory given by the
# CLEED_PHASE environment variable. A TOML file may be used instead.
config_path = 'leed.toml'
config = PhaseConfig.from_toml(config_path) if exists(config_path) \
    else PhaseConfig.from_env()

# Print the control output produced while reading files
verbose = True

# 1.2: Scattering sites
# ---------------------
# Each site is given by the name of its phase shift file & its displacement
# vector; element 0 of which is unused.
sites = [
    ('Ni', [0., 0., 0., 0.05]),   # Top layer, relaxed outwards
    ('Ni', [0., 0., 0., 0.05]),
    ('Ni', [0., 0., 0., 0.]),     # Bulk layers
    ('Ni', [0., 0., 0., 0.]),
    ('O', [0., 0.1, 0., 0.])]     # Adsorbate

# ========================= #
# STEP 2: Load phase shifts #
# ========================= #
if verbose:
    logging.basicConfig(level=logging.DEBUG, format='%(message)s')

repository = PhaseShiftRepository.from_config(config)

with warnings.catch_warnings(record=True) as caught:
    warnings.simplefilter('always', TruncatedDataWarning)
    indices = repository.load_many(sites)

for warning in caught:
    print(f'WARNING: {warning.message}')

# ================== #
# STEP 3: Inspection #
# ================== #
print(f'{len(sites)} sites share {len(repository)} phase shift tables')
for (name, _), index in zip(sites, indices):
    table = repository[index]
    print(f'{name:>3s} -> {index}: {table}; '
          f'{table.energy_min:.3f}-{table.energy_max:.3f} H')
