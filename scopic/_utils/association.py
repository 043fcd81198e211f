"""Negative-binomial association tests between items and topic weights.

Each (item, topic) pair is an independent regression of the item's raw
counts on one topic-weight column, so the grid is evaluated with joblib
and every fit writes into its own cell of pre-sized result arrays.
"""

import logging
import warnings
from typing import Callable, Optional, Tuple

import numpy as np
import statsmodels.api as sm
from joblib import Parallel, delayed

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, int], None]


def fit_nb_regression(
    y: np.ndarray,
    x: np.ndarray,
    max_iter: int = 100
) -> Tuple[float, float]:
    """Regress counts y on x with an NB2 model (log link, intercept).

    Args:
        y: (N,) non-negative counts for one item.
        x: (N,) topic weights for the same N documents.
        max_iter: iteration cap passed to the optimizer.

    Returns:
        (coefficient, p-value) for x. Both are NaN if the fit raised,
        did not converge, or produced non-finite estimates.
    """
    exog = sm.add_constant(x, has_constant='add')
    with warnings.catch_warnings(), np.errstate(all='ignore'):
        warnings.simplefilter('ignore')
        try:
            fit = sm.NegativeBinomial(y, exog).fit(maxiter=max_iter, disp=0)
        except Exception as e:
            logger.debug("NB regression raised %s: %s", type(e).__name__, e)
            return np.nan, np.nan

    if not fit.mle_retvals.get('converged', True):
        logger.debug("NB regression did not converge in %d iterations", max_iter)
        return np.nan, np.nan

    coef = float(np.asarray(fit.params)[1])
    pvalue = float(np.asarray(fit.pvalues)[1])
    if not (np.isfinite(coef) and np.isfinite(pvalue)):
        return np.nan, np.nan
    return coef, pvalue


def run_association_tests(
    item_counts: np.ndarray,
    topics: np.ndarray,
    max_iter: int = 100,
    n_jobs: int = 1,
    progress_every: int = 100,
    progress_callback: Optional[ProgressCallback] = None,
    verbose: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run the NB regression for every item against every topic column.

    Parameters
    ----------
    item_counts : np.ndarray, shape (P, N)
        Raw counts, one row per item, over the N documents.
    topics : np.ndarray, shape (N, K)
        Topic-weights matrix.
    max_iter : int, default=100
        Iteration cap for each regression.
    n_jobs : int, default=1
        Number of joblib workers (1 runs sequentially, -1 uses all cores).
    progress_every : int, default=100
        Items per block between progress reports.
    progress_callback : callable, optional
        Called as ``progress_callback(topic, items_done, num_items)`` with a
        1-based topic label, at the start of each topic and after each block.
    verbose : bool, default=False
        Print status lines.

    Returns
    -------
    pvalues, coefficients : np.ndarray, shape (P, K)
        NaN where the regression failed.
    """
    P = item_counts.shape[0]
    K = topics.shape[1]
    pvalues = np.full((P, K), np.nan)
    coefficients = np.full((P, K), np.nan)

    with Parallel(n_jobs=n_jobs) as parallel:
        for k in range(K):
            topic = k + 1
            x = topics[:, k]
            if verbose:
                print(f"State {topic}")
            if progress_callback is not None:
                progress_callback(topic, 0, P)

            for start in range(0, P, progress_every):
                stop = min(start + progress_every, P)
                fits = parallel(
                    delayed(fit_nb_regression)(item_counts[i], x, max_iter)
                    for i in range(start, stop)
                )
                for i, (coef, pvalue) in zip(range(start, stop), fits):
                    coefficients[i, k] = coef
                    pvalues[i, k] = pvalue

                if verbose and stop % progress_every == 0:
                    print(f"State {topic} {stop}", end='\r')
                if progress_callback is not None:
                    progress_callback(topic, stop, P)

    n_failed = int(np.isnan(pvalues).sum())
    if n_failed:
        warnings.warn(
            f"{n_failed} of {P * K} negative binomial regressions failed to "
            f"converge or raised; their statistics are left missing.",
            UserWarning
        )

    return pvalues, coefficients
