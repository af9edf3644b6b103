import math

import numpy as np
from scipy.optimize import minimize

MODELS = ("equal", "proportional", "stepwise")

# Familias model codes -> (reporting name, model kind)
FAMILIAS_MODELS = [
    ("equal", "equal"),
    ("prop", "proportional"),
    ("step-unstationary", "stepwise"),
    ("step-stationary", "stepwise"),
    ("step-ext", "stepwise"),
]

FALLBACK_CODES = {"equal": 0, "proportional": 1}


class StabilizationError(ValueError):
    """No stationary version of a mutation matrix could be found."""


class MutationMatrix:
    """
    A mutation matrix together with the parameters it was built from.

    matrix[i, j] is the probability that allele i mutates to allele j
    when transmitted from parent to child.
    """
    def __init__(self, matrix, alleles, afreq, model, rate, rate2=None,
                 mutation_range=None, stabilized=False):
        self.matrix = np.asarray(matrix, dtype=float)
        self.alleles = list(alleles)
        self.afreq = np.asarray(afreq, dtype=float)
        self.model = model
        self.rate = rate
        self.rate2 = rate2
        self.mutation_range = mutation_range
        self.stabilized = stabilized

    @property
    def n_alleles(self):
        return len(self.alleles)

    def is_trivial(self):
        """True if no mutations are possible (identity matrix)."""
        return bool(np.all(np.diag(self.matrix) == 1))

    def is_stationary(self, tol=1e-8):
        return is_stationary(self.matrix, self.afreq, tol=tol)

    def overall_rate(self):
        """Expected mutation rate given the allele frequencies."""
        return float(self.afreq @ (1 - np.diag(self.matrix)))

    def __eq__(self, other):
        if not isinstance(other, MutationMatrix):
            return NotImplemented
        return (self.model == other.model and self.alleles == other.alleles
                and self.matrix.shape == other.matrix.shape
                and np.array_equal(self.matrix, other.matrix))

    def __repr__(self):
        return (f"MutationMatrix(model={self.model}, rate={self.rate}, "
                f"n_alleles={self.n_alleles}, stabilized={self.stabilized})")


def is_stationary(matrix, afreq, tol=1e-8):
    afreq = np.asarray(afreq, dtype=float)
    return bool(np.allclose(afreq @ np.asarray(matrix, dtype=float), afreq, atol=tol))


def _num_or(x, default):
    if x is None or (isinstance(x, float) and math.isnan(x)):
        return default
    return x


def _equal_matrix(n, rate):
    if n == 1:
        return np.ones((1, 1))
    mat = np.full((n, n), rate / (n - 1))
    np.fill_diagonal(mat, 1 - rate)
    return mat


def _proportional_matrix(afreq, rate):
    n = len(afreq)
    denom = float(np.sum(afreq * (1 - afreq)))
    if n == 1 or denom == 0:
        return np.eye(n)
    alpha = rate / denom
    mat = np.tile(alpha * afreq, (n, 1))
    np.fill_diagonal(mat, 1 - alpha * (1 - afreq))
    return mat


def _stepwise_matrix(alleles, rate, rate2, mutation_range):
    try:
        values = np.array([float(a) for a in alleles])
    except ValueError:
        raise ValueError("The stepwise model requires numerical alleles: " + ", ".join(alleles))
    if mutation_range is None or not mutation_range > 0:
        raise ValueError(f"The stepwise model requires a positive range, not {mutation_range}")

    n = len(values)
    mat = np.zeros((n, n))
    idx = np.arange(n)
    for i in range(n):
        diff = values - values[i]
        others = idx != i
        integer_step = others & np.isclose(diff, np.round(diff))
        microvariant = others & ~integer_step
        if integer_step.any():
            w = mutation_range ** np.abs(diff[integer_step])
            mat[i, integer_step] = rate * w / w.sum()
        if microvariant.any():
            mat[i, microvariant] = rate2 / microvariant.sum()
        mat[i, i] = 1 - mat[i].sum()
    return mat


def mutation_matrix(model, alleles, afreq, rate, rate2=None, mutation_range=None):
    """
    Build a mutation matrix.

    Parameters:
    model : str
        One of "equal", "proportional", "stepwise"
    alleles : list[str]
        Allele labels; numerical for the stepwise model
    afreq : array_like
        Allele frequencies, in the same order as `alleles`
    rate : float
        Overall mutation rate
    rate2 : float, optional
        Stepwise model: rate of mutations to microvariants
    mutation_range : float, optional
        Stepwise model: relative probability of each additional step

    Returns:
    MutationMatrix
    """
    if model not in MODELS:
        raise ValueError(f"Unknown mutation model: {model}")
    afreq = np.asarray(afreq, dtype=float)
    if len(afreq) != len(alleles):
        raise ValueError("`alleles` and `afreq` must have the same length")
    rate = _num_or(rate, 0.0)

    if model == "equal":
        mat = _equal_matrix(len(alleles), rate)
    elif model == "proportional":
        mat = _proportional_matrix(afreq, rate)
    else:
        mat = _stepwise_matrix(alleles, rate, _num_or(rate2, 0.0), mutation_range)

    if np.any(np.diag(mat) < 0):
        raise ValueError(f"Mutation rate {rate} is too high for the '{model}' model")

    return MutationMatrix(mat, alleles, afreq, model, rate, rate2=rate2,
                          mutation_range=mutation_range)


def stabilize(mutmat, method="PM", tol=1e-6):
    """
    Find a stationary version of a mutation matrix.

    The "PM" method searches for the matrix closest to the original (least
    squares over the off-diagonal entries) for which the allele frequencies
    are stationary, with the overall mutation rate unchanged.

    Raises StabilizationError if the optimisation fails.
    """
    if method != "PM":
        raise ValueError(f"Unsupported stabilization method: {method}")

    M = mutmat.matrix
    p = mutmat.afreq
    n = M.shape[0]
    if n < 2 or is_stationary(M, p):
        return MutationMatrix(M.copy(), mutmat.alleles, p, mutmat.model, mutmat.rate,
                              rate2=mutmat.rate2, mutation_range=mutmat.mutation_range,
                              stabilized=True)

    off = ~np.eye(n, dtype=bool)
    target_rate = mutmat.overall_rate()

    def unpack(x):
        S = np.zeros((n, n))
        S[off] = x
        S[np.diag_indices(n)] = 1 - S.sum(axis=1)
        return S

    constraints = [
        # the last column follows from the row sums
        {"type": "eq", "fun": lambda x: (p @ unpack(x) - p)[:-1]},
        {"type": "eq", "fun": lambda x: p @ (1 - np.diag(unpack(x))) - target_rate},
        {"type": "ineq", "fun": lambda x: np.diag(unpack(x))},
    ]
    res = minimize(lambda x: np.sum((x - M[off]) ** 2), x0=M[off], method="SLSQP",
                   bounds=[(0, 1)] * int(off.sum()), constraints=constraints,
                   options={"maxiter": 500, "ftol": 1e-12})
    if not res.success:
        raise StabilizationError(f"Stabilization failed: {res.message}")

    S = unpack(np.clip(res.x, 0, 1))
    if np.any(np.diag(S) < -tol) or not is_stationary(S, p, tol=tol):
        raise StabilizationError("Stabilization did not produce a stationary matrix")

    return MutationMatrix(S, mutmat.alleles, p, mutmat.model, mutmat.rate,
                          rate2=mutmat.rate2, mutation_range=mutmat.mutation_range,
                          stabilized=True)
