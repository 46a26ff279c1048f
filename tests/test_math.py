"""Tests for quaternion and activation helpers."""

import numpy as np

from src.shared.math import (
    logit,
    quat_from_euler_deg,
    quat_is_identity,
    quat_multiply,
    quat_normalize,
    quat_to_rotation_matrix,
    sigmoid,
)


class TestActivations:
    def test_sigmoid_logit_inverse(self):
        """logit undoes sigmoid."""
        p = np.array([0.01, 0.25, 0.5, 0.9])
        np.testing.assert_allclose(sigmoid(logit(p)), p, rtol=1e-12)

    def test_sigmoid_limits(self):
        """Infinite inputs saturate to 0 and 1."""
        np.testing.assert_array_equal(sigmoid(np.array([-np.inf, np.inf])), [0.0, 1.0])
        assert sigmoid(0.0) == 0.5

    def test_logit_limits(self):
        """0 and 1 map to the infinities."""
        np.testing.assert_array_equal(logit(np.array([0.0, 1.0])), [-np.inf, np.inf])


class TestQuaternions:
    """Quaternion helpers (wxyz)."""

    def test_multiply_identity(self):
        """The identity is neutral on both sides."""
        q = quat_normalize(np.array([0.3, -0.2, 0.8, 0.1]))
        identity = np.array([1.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(quat_multiply(identity, q), q)
        np.testing.assert_allclose(quat_multiply(q, identity), q)

    def test_multiply_broadcasts(self):
        """A single quaternion multiplies a batch row by row."""
        q = quat_from_euler_deg(0, 0, 90)
        batch = np.tile([1.0, 0.0, 0.0, 0.0], (5, 1))
        result = quat_multiply(q, batch)
        assert result.shape == (5, 4)
        np.testing.assert_allclose(result, np.tile(q, (5, 1)))

    def test_inverse_rotation_is_transpose(self):
        """Negating the vector part gives the transposed rotation matrix."""
        q = quat_normalize(np.array([0.5, 0.5, -0.5, 0.1]))
        inverse = q * [1.0, -1.0, -1.0, -1.0]
        np.testing.assert_allclose(quat_multiply(q, inverse), [1.0, 0.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(quat_to_rotation_matrix(inverse), quat_to_rotation_matrix(q).T, atol=1e-12)

    def test_normalize_degenerate(self):
        """A zero quaternion normalizes to the identity."""
        np.testing.assert_array_equal(quat_normalize(np.zeros(4)), [1.0, 0.0, 0.0, 0.0])

    def test_is_identity(self):
        """Scaled identities count, small rotations do not."""
        assert quat_is_identity(np.array([1.0, 0.0, 0.0, 0.0]))
        assert quat_is_identity(np.array([-2.0, 0.0, 0.0, 0.0]))
        assert not quat_is_identity(quat_from_euler_deg(1, 0, 0))

    def test_rotation_matrix_is_orthonormal(self):
        """Rotation matrices are proper and orthonormal."""
        matrix = quat_to_rotation_matrix(quat_from_euler_deg(10, 20, 30))
        np.testing.assert_allclose(matrix @ matrix.T, np.eye(3), atol=1e-12)
        assert np.isclose(np.linalg.det(matrix), 1.0)

    def test_euler_x_rotation(self):
        """90 degrees about X takes +Y to +Z."""
        matrix = quat_to_rotation_matrix(quat_from_euler_deg(90, 0, 0))
        np.testing.assert_allclose(matrix @ [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], atol=1e-12)

    def test_euler_order(self):
        """X is applied first, then Y, then Z."""
        combined = quat_to_rotation_matrix(quat_from_euler_deg(30, 40, 50))
        rx = quat_to_rotation_matrix(quat_from_euler_deg(30, 0, 0))
        ry = quat_to_rotation_matrix(quat_from_euler_deg(0, 40, 0))
        rz = quat_to_rotation_matrix(quat_from_euler_deg(0, 0, 50))
        np.testing.assert_allclose(combined, rz @ ry @ rx, atol=1e-12)
