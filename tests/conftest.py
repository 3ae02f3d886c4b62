import pytest
import torch
# Default must be set to float64 so that tolerances are honoured exactly
torch.set_default_dtype(torch.float64)


def pytest_addoption(parser):
    """Set up command line options."""
    parser.addoption(  # Enable device selection
        "--device", action="store", default="cpu",
        help="specify test device (cpu/cuda/etc/...)"
    )


@pytest.fixture(scope='session')
def device(request) -> torch.device:
    """Defines the device on which each test should be run.

    Returns:
        device: The device on which the test will be run.

    """
    # Device checks require CPU to be specified *without* a device number and
    # cuda to be specified *with* one.
    device_name = request.config.getoption("--device")
    if device_name == 'cuda':
        return torch.device('cuda:0')
    else:
        return torch.device(device_name)


@pytest.fixture
def phase_dir(tmp_path):
    """A directory holding a small selection of phase shift files.

    Files:
        Ni.phs: three energies in eV with ℓ_max = 1, includes packed negative
            numbers.
        Fe.phs: two energies in Hartree with ℓ_max = 2 and no unit token.
        Short.phs: declares three energies in Rydberg but holds only two full
            energy/phase shift pairs followed by an orphaned energy line.

    Returns:
        path: the directory as a string.
    """
    files = {
        'Ni.phs': (
            '# Ni phase shifts\n'
            '# second comment line\n'
            '3 1 eV\n'
            '  27.18\n'
            '  0.1234-0.5678\n'
            '  54.36\n'
            '  0.2345 0.6789\n'
            '  81.54\n'
            ' -1.0E-01-2.5E-02\n'),
        'Fe.phs': (
            '2 2\n'
            '0.5\n'
            '0.1000 0.2000 0.3000\n'
            '1.0\n'
            '0.4000-0.5000-0.6000\n'),
        'Short.phs': (
            '3 2 RYD\n'
            '0.5\n'
            ' 0.1 0.2 0.3\n'
            '1.0\n'
            ' 0.4-0.5 0.6\n'
            '1.5\n')}

    for name, text in files.items():
        (tmp_path / name).write_text(text)

    return str(tmp_path)
