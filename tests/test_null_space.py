"""Tests for SVD null-space extraction."""
import logging

import numpy as np
import pytest

from emme.errors import InvalidArgument
from emme.matrix import Matrix
from emme.null_space import null_space


class TestNullSpace:

    def test_rank_deficient_diagonal(self):
        m = Matrix.from_array(np.diag([1.0, 2.0, 0.0]))
        basis = null_space(m)
        assert basis.shape == (3, 1)
        x = np.asarray(basis)[:, 0]
        assert np.linalg.norm(x) == pytest.approx(1.0)
        assert np.allclose(np.asarray(m) @ x, 0.0)

    def test_two_dimensional(self):
        m = Matrix.from_array(np.diag([0.0, 0.0, 1.0]))
        basis = np.asarray(null_space(m))
        assert basis.shape == (3, 2)
        assert np.allclose(basis[2, :], 0.0)
        # orthonormal columns
        assert np.allclose(basis.conj().T @ basis, np.eye(2))

    def test_complex_rank_one(self):
        u = np.array([1.0, 1j, 2.0 - 1j])
        v = np.array([0.5, -1.0 + 2j, 1j])
        a = np.outer(u, v)
        basis = np.asarray(null_space(Matrix.from_array(a), tol=1e-10))
        assert basis.shape == (3, 2)
        assert np.allclose(a @ basis, 0.0)

    def test_full_rank_is_empty(self, caplog):
        with caplog.at_level(logging.WARNING, logger="emme.null_space"):
            basis = null_space(Matrix.from_array(np.eye(4)))
        assert basis.shape == (4, 0)
        assert "null space is empty" in caplog.text

    def test_explicit_tolerance(self):
        m = Matrix.from_array(np.diag([1.0, 1e-8, 1e-3]))
        assert null_space(m).cols == 0
        assert null_space(m, tol=1e-6).cols == 1
        assert null_space(m, tol=1e-2).cols == 2

    def test_accepts_arrays(self):
        basis = null_space(np.array([[1.0, 1.0], [1.0, 1.0]]), tol=1e-10)
        x = np.asarray(basis)[:, 0]
        assert abs(x[0] + x[1]) < 1e-12

    def test_zero_matrix_is_all_null(self):
        """With s_max == 0 the default threshold still takes every direction."""
        basis = np.asarray(null_space(Matrix(3, 3)))
        assert basis.shape == (3, 3)
        assert np.allclose(basis.conj().T @ basis, np.eye(3))

    def test_zero_tolerance_selects_exact_zeros(self):
        basis = null_space(Matrix.from_array(np.diag([2.0, 0.0])), tol=0.0)
        assert basis.cols == 1
        assert abs(np.asarray(basis)[1, 0]) == pytest.approx(1.0)

    def test_empty_matrix(self):
        assert null_space(Matrix(0, 0)).shape == (0, 0)

    def test_not_square(self):
        with pytest.raises(InvalidArgument):
            null_space(Matrix(3, 4))
