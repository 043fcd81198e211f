"""Per-topic scores: FDR q-values, specificity and similarity."""

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity
from statsmodels.stats.multitest import multipletests


def fdr_correct(pvalues: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg correction applied to each topic column separately.

    Missing p-values are left out of the correction and stay missing.

    Args:
        pvalues: (P, K) p-values, NaN where missing.

    Returns:
        qvalues: (P, K) adjusted p-values.
    """
    qvalues = np.full(pvalues.shape, np.nan)
    for k in range(pvalues.shape[1]):
        column = pvalues[:, k]
        valid = ~np.isnan(column)
        if not valid.any():
            continue
        _, qvalues[valid, k], _, _ = multipletests(column[valid], method='fdr_bh')
    return qvalues


def topic_specificity(terms: np.ndarray) -> np.ndarray:
    """Normalize each item's term weights across topics.

    Args:
        terms: (K, P) term-weights matrix.

    Returns:
        specificity: (P, K); each row sums to 1.
    """
    return (terms / terms.sum(axis=0, keepdims=True)).T


def relative_expression(counts: np.ndarray) -> np.ndarray:
    """Divide each cell's counts by that cell's total.

    ``counts`` is genes x cells. Cells with no counts stay all zero.
    """
    counts = np.asarray(counts, dtype=float)
    totals = counts.sum(axis=0, keepdims=True)
    return np.divide(counts, totals, out=np.zeros_like(counts), where=totals > 0)


def topic_similarity(profiles: np.ndarray, topics: np.ndarray) -> np.ndarray:
    """Cosine similarity of each item profile to each topic-weight column.

    Args:
        profiles: (P, N) relative expression, one row per item.
        topics: (N, K) topic-weights matrix.

    Returns:
        similarity: (P, K). NaN for items with an all-zero profile, where
        the cosine is undefined.
    """
    similarity = cosine_similarity(profiles, topics.T)
    empty = ~np.any(profiles != 0, axis=1)
    similarity[empty, :] = np.nan
    return similarity
