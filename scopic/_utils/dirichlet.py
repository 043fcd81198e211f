"""Maximum-likelihood estimate of a symmetric Dirichlet concentration."""

import numpy as np
from scipy.optimize import minimize_scalar
from scipy.special import digamma, gammaln

MIN_ALPHA = 1e-6
MAX_ALPHA = 1e4


def estimate_dirichlet_concentration(doc_topic_gamma: np.ndarray) -> float:
    """
    Estimate the symmetric document-topic concentration from variational posteriors.

    Maximises the expected Dirichlet log-likelihood

        D * (log Gamma(K a) - K log Gamma(a)) + (a - 1) * sum_dk E[log theta_dk]

    over log(a), where E[log theta_dk] = digamma(gamma_dk) - digamma(sum_k gamma_dk).

    Parameters
    ----------
    doc_topic_gamma : np.ndarray, shape (D, K)
        Variational Dirichlet parameters of each document's topic weights.

    Returns
    -------
    float
        Estimated concentration a, clipped to [MIN_ALPHA, MAX_ALPHA].

    Raises
    ------
    FloatingPointError
        If the posteriors are not positive and finite.
    """
    gamma = np.asarray(doc_topic_gamma, dtype=float)
    if gamma.ndim != 2 or gamma.size == 0:
        raise ValueError(f"doc_topic_gamma must be a non-empty 2D array, got shape {gamma.shape}")
    if not np.all(np.isfinite(gamma)) or np.any(gamma <= 0):
        raise FloatingPointError("Variational Dirichlet parameters must be positive and finite")

    D, K = gamma.shape
    e_log_theta = digamma(gamma) - digamma(np.sum(gamma, axis=1, keepdims=True))
    ss = np.sum(e_log_theta)

    def neg_log_likelihood(log_a):
        a = np.exp(log_a)
        return -(D * (gammaln(K * a) - K * gammaln(a)) + (a - 1) * ss)

    opt = minimize_scalar(
        neg_log_likelihood,
        bounds=(np.log(MIN_ALPHA), np.log(MAX_ALPHA)),
        method='bounded',
    )
    return float(np.exp(opt.x))
