import numpy as np
import pytest

from gpmotion.motion.basis import build_spectral_basis
from gpmotion.motion.kernels import KernelKind, covariance_matrix


def _reference_positions(pc, seed=0):
    rng = np.random.default_rng(seed)
    return rng.uniform(0.0, 400.0, size=(pc, 2))


@pytest.mark.parametrize("kind", [KernelKind.GAUSSIAN, KernelKind.EXPONENTIAL])
def test_full_basis_reconstructs_covariance(kind):
    positions = _reference_positions(7)
    basis = build_spectral_basis(positions, sig_vel_px=0.8, sig_div_px=150.0,
                                 max_dims=7, kind=kind)

    A = covariance_matrix(positions, 0.8, 150.0, kind)
    assert np.allclose(basis.reconstruct(), A, atol=1e-9)
    assert np.allclose(basis.covariance, A)


def test_eigenvalues_descending_and_truncated():
    positions = _reference_positions(9, seed=3)
    basis = build_spectral_basis(positions, sig_vel_px=1.0, sig_div_px=300.0,
                                 max_dims=4, kind=KernelKind.EXPONENTIAL)

    assert basis.mode_count == 4
    assert basis.particle_count == 9
    assert basis.loadings.shape == (9, 4)
    assert np.all(np.diff(basis.eigenvalues) <= 0.0)
    assert np.all(basis.eigenvalues > 0.0)

    # columns are sqrt(eigenvalue) times unit vectors
    norms = np.linalg.norm(basis.loadings, axis=0)
    assert np.allclose(norms, np.sqrt(basis.eigenvalues))


def test_two_particles_single_mode():
    positions = np.array([[10.0, 10.0], [40.0, 50.0]])
    sig_vel, sig_div = 1.5, 60.0
    basis = build_spectral_basis(positions, sig_vel, sig_div, max_dims=1)

    dd = 30.0 ** 2 + 40.0 ** 2
    s = sig_vel ** 2
    k = s * np.exp(-0.5 * dd / sig_div ** 2)
    A = np.array([[s, k], [k, s]])
    w, v = np.linalg.eigh(A)

    assert basis.mode_count == 1
    assert basis.eigenvalues[0] == pytest.approx(w[-1])
    assert basis.eigenvalues[0] == pytest.approx(s + k)

    expected = np.sqrt(w[-1]) * v[:, -1]
    column = basis.loadings[:, 0]
    # singular vectors are defined up to sign
    assert np.allclose(np.abs(column), np.abs(expected))
    assert np.linalg.norm(column / np.sqrt(basis.eigenvalues[0])) == pytest.approx(1.0)


def test_coincident_particles_drop_zero_mode():
    positions = np.array([[5.0, 5.0], [5.0, 5.0]])
    basis = build_spectral_basis(positions, 1.0, 50.0, max_dims=2)

    assert basis.mode_count == 1
    assert basis.eigenvalues[0] == pytest.approx(2.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(sig_vel_px=0.0, sig_div_px=10.0, max_dims=2),
        dict(sig_vel_px=1.0, sig_div_px=-1.0, max_dims=2),
        dict(sig_vel_px=1.0, sig_div_px=10.0, max_dims=0),
    ],
)
def test_invalid_hyperparameters_raise(kwargs):
    with pytest.raises(ValueError):
        build_spectral_basis(_reference_positions(3), **kwargs)


def test_invalid_positions_raise():
    with pytest.raises(ValueError):
        build_spectral_basis(np.zeros((0, 2)), 1.0, 10.0, max_dims=2)
    with pytest.raises(ValueError):
        build_spectral_basis(np.zeros((3, 3)), 1.0, 10.0, max_dims=2)
    with pytest.raises(ValueError):
        build_spectral_basis(np.array([[0.0, np.nan]]), 1.0, 10.0, max_dims=1)


def test_overflowing_covariance_is_a_construction_error():
    with pytest.raises(RuntimeError):
        build_spectral_basis(_reference_positions(3), 1e200, 10.0, max_dims=2)
