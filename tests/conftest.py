"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest

from src.domain.table import Column, DataTable
from src.infrastructure.processing.gaussian_constants import GaussianConstants as GC


def make_splat_table(
    num_splats: int = 300,
    sh_bands: int = 0,
    extent: float = 10.0,
    seed: int = 0,
    dominant_rotations: bool = False,
) -> DataTable:
    """
    Build a random splat table.

    Positions are uniform in [0, extent]^3, scales are log-space, opacities
    logit-space. With ``dominant_rotations`` every quaternion has one component
    much larger than the rest.
    """
    rng = np.random.default_rng(seed)

    if dominant_rotations:
        quats = rng.uniform(-0.2, 0.2, size=(num_splats, 4))
        axis = rng.integers(0, 4, size=num_splats)
        sign = rng.choice([-1.0, 1.0], size=num_splats)
        quats[np.arange(num_splats), axis] = sign
    else:
        quats = rng.normal(size=(num_splats, 4))
    quats /= np.linalg.norm(quats, axis=1, keepdims=True)

    values = {
        "x": rng.uniform(0.0, extent, num_splats),
        "y": rng.uniform(0.0, extent, num_splats),
        "z": rng.uniform(0.0, extent, num_splats),
        "rot_0": quats[:, 0],
        "rot_1": quats[:, 1],
        "rot_2": quats[:, 2],
        "rot_3": quats[:, 3],
        "scale_0": rng.normal(-3.0, 0.5, num_splats),
        "scale_1": rng.normal(-3.0, 0.5, num_splats),
        "scale_2": rng.normal(-3.0, 0.5, num_splats),
        "f_dc_0": rng.normal(0.0, 0.5, num_splats),
        "f_dc_1": rng.normal(0.0, 0.5, num_splats),
        "f_dc_2": rng.normal(0.0, 0.5, num_splats),
        "opacity": rng.normal(0.0, 2.0, num_splats),
    }
    table = DataTable(Column(name, data.astype(np.float32)) for name, data in values.items())

    for i in range(3 * GC.SH.BAND_COEFFS[sh_bands]):
        table.add_column(Column(f"f_rest_{i}", rng.normal(0.0, 0.3, num_splats).astype(np.float32)))
    return table


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def make_table():
    """Factory fixture for custom random splat tables."""
    return make_splat_table


@pytest.fixture
def splat_table():
    """300 splats spanning [0, 10]^3, no SH coefficients."""
    return make_splat_table()


@pytest.fixture
def splat_table_sh3():
    """300 splats with all three SH bands (45 f_rest columns)."""
    return make_splat_table(sh_bands=3, seed=1)


@pytest.fixture
def small_table():
    """Hand-written 4-row table for exact assertions."""
    return DataTable([
        Column("x", np.array([0.0, 1.0, 2.0, 3.0], dtype=np.float32)),
        Column("y", np.array([0.0, 0.0, 1.0, 1.0], dtype=np.float32)),
        Column("z", np.array([0.0, 0.0, 0.0, 5.0], dtype=np.float32)),
        Column("id", np.array([10, 11, 12, 13], dtype=np.int32)),
    ])
