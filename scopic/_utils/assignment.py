"""Reduce per-topic statistics to a single topic assignment per item."""

import numpy as np

from scopic._core.results import UNASSIGNED


def eligible_topics(
    qvalues: np.ndarray,
    coefficients: np.ndarray,
    specificity: np.ndarray,
    similarity: np.ndarray,
    max_q: float = 0.05,
    min_coef: float = 1,
    min_spec: float = 0.1,
    min_sim: float = 0
) -> np.ndarray:
    """Boolean (P, K) mask of topics passing all four thresholds.

    Thresholds are strict and NaN compares False, so a missing statistic
    never makes a topic eligible.
    """
    with np.errstate(invalid='ignore'):
        return (
            (qvalues < max_q)
            & (coefficients > min_coef)
            & (specificity > min_spec)
            & (similarity > min_sim)
        )


def assign_topics(
    qvalues: np.ndarray,
    coefficients: np.ndarray,
    specificity: np.ndarray,
    similarity: np.ndarray,
    max_q: float = 0.05,
    min_coef: float = 1,
    min_spec: float = 0.1,
    min_sim: float = 0
) -> np.ndarray:
    """
    Assign each item to at most one topic.

    An item with no eligible topic is unassigned. With one eligible topic it
    gets that topic; with several it gets the one with the smallest q-value,
    and equal q-values go to the lowest topic index.

    Parameters
    ----------
    qvalues, coefficients, specificity, similarity : np.ndarray, shape (P, K)
        Per-item, per-topic statistics.
    max_q, min_coef, min_spec, min_sim : float
        Strict thresholds.

    Returns
    -------
    np.ndarray, shape (P,)
        1-based topic labels, ``UNASSIGNED`` (0) where no topic qualifies.
    """
    eligible = eligible_topics(
        qvalues, coefficients, specificity, similarity,
        max_q=max_q, min_coef=min_coef, min_spec=min_spec, min_sim=min_sim
    )
    masked_q = np.where(eligible, qvalues, np.inf)
    # argmin returns the first minimum
    best = np.argmin(masked_q, axis=1) + 1
    return np.where(eligible.any(axis=1), best, UNASSIGNED).astype(int)
