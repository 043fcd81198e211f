"""Multi-restart LDA inference.

Wraps scikit-learn's variational-EM LDA solver: one fit per seed, keeping
the restart with the highest approximate log-likelihood bound. Within a
restart the symmetric document-topic concentration is re-estimated from
the fitted variational posteriors and the solver is refitted at the new
value until the estimate settles.
"""

import logging
import time
import numpy as np
from typing import Optional, Dict, List, Sequence, Tuple

from sklearn.decomposition import LatentDirichletAllocation

from scopic._core.errors import SolverFailure, UsageError
from scopic._core.results import ScopicModel
from scopic._utils.dirichlet import estimate_dirichlet_concentration

logger = logging.getLogger(__name__)

TOPIC_LABELS = {'genes': 'Gene Set', 'cells': 'Cell Cluster'}

DEFAULT_LDA_PARAMS = {
    'learning_method': 'batch',
    'max_iter': 100,
}

# Relative change in the concentration below which the estimate has settled.
ALPHA_TOL = 1e-2


def _row_normalize(mat: np.ndarray) -> np.ndarray:
    totals = mat.sum(axis=1, keepdims=True)
    return mat / totals


def _fit_restart(
    documents: np.ndarray,
    num_topics: int,
    seed: int,
    alpha: float,
    estimate_alpha: bool,
    alpha_max_rounds: int,
    params: dict
) -> Tuple[LatentDirichletAllocation, int]:
    """Fit one restart, alternating solver fits with concentration updates."""
    doc_lengths = documents.sum(axis=1, keepdims=True)
    round_num = 0
    while True:
        round_num += 1
        lda = LatentDirichletAllocation(
            n_components=num_topics,
            random_state=seed,
            doc_topic_prior=alpha,
            **params
        )
        lda.fit(documents)
        if not estimate_alpha or round_num >= alpha_max_rounds:
            return lda, round_num

        # Variational Dirichlet parameters of a document sum to K * alpha plus its length.
        gamma = lda.transform(documents) * (num_topics * alpha + doc_lengths)
        new_alpha = estimate_dirichlet_concentration(gamma)
        logger.debug("Seed %s round %d: alpha %.4g -> %.4g", seed, round_num, alpha, new_alpha)
        if abs(np.log(new_alpha / alpha)) < ALPHA_TOL:
            return lda, round_num
        alpha = new_alpha


def run_lda_inference(
    documents: np.ndarray,
    num_topics: int,
    seeds: Sequence[int],
    orientation: str,
    item_names: Optional[List] = None,
    document_names: Optional[List] = None,
    verbose: bool = True,
    estimate_alpha: bool = True,
    alpha_max_rounds: int = 10,
    **lda_kwargs
) -> ScopicModel:
    """
    Fit LDA once per seed and return the best-scoring restart.

    Parameters
    ----------
    documents : np.ndarray, shape (N, P)
        Count matrix with documents in rows and terms (the items being
        assigned) in columns.
    num_topics : int
        Number of topics K.
    seeds : sequence of int
        One random seed per restart.
    orientation : {'genes', 'cells'}
        Which axis of the original counts matrix the terms came from.
    item_names, document_names : list, optional
        Labels for the terms and documents.
    verbose : bool, default=True
        Print status lines before and after fitting.
    estimate_alpha : bool, default=True
        Estimate the symmetric document-topic concentration. If False, the
        starting value is held fixed.
    alpha_max_rounds : int, default=10
        Maximum number of solver fits per restart while estimating alpha.
    **lda_kwargs : dict
        Passed through to ``LatentDirichletAllocation``. ``doc_topic_prior``
        is the starting concentration (default 1/K).

    Returns
    -------
    ScopicModel

    Raises
    ------
    UsageError
        If the starting concentration or the round limit is invalid.
    SolverFailure
        If none of the restarts produced a usable fit.
    """
    params = dict(DEFAULT_LDA_PARAMS)
    params.update(lda_kwargs)
    initial_alpha = params.pop('doc_topic_prior', None)
    if initial_alpha is None:
        initial_alpha = 1.0 / num_topics
    initial_alpha = float(initial_alpha)
    if not initial_alpha > 0:
        raise UsageError(f"doc_topic_prior must be positive, got {initial_alpha}")
    if alpha_max_rounds < 1:
        raise UsageError(f"alpha_max_rounds must be >= 1, got {alpha_max_rounds}")
    topic_label = TOPIC_LABELS[orientation]

    if verbose:
        print(f"Build Model - {topic_label} Topics: {num_topics} "
              f"({len(seeds)} restart{'s' if len(seeds) != 1 else ''})")

    start_time = time.time()
    best_lda = None
    best_score = -np.inf
    best_seed = None
    best_rounds = None
    restart_scores: Dict[int, float] = {}
    restart_perplexities: Dict[int, float] = {}
    last_error: Optional[BaseException] = None

    for seed in seeds:
        try:
            lda, rounds = _fit_restart(documents, num_topics, seed, initial_alpha,
                                       estimate_alpha, alpha_max_rounds, params)
            score = float(lda.score(documents))
            perplexity = float(lda.perplexity(documents))
        except (ValueError, FloatingPointError, np.linalg.LinAlgError) as e:
            logger.warning("LDA restart with seed %s failed: %s", seed, e)
            last_error = e
            continue

        if not np.isfinite(score):
            logger.warning("LDA restart with seed %s gave non-finite score", seed)
            continue

        restart_scores[seed] = score
        restart_perplexities[seed] = perplexity
        if score > best_score:
            best_lda, best_score, best_seed, best_rounds = lda, score, seed, rounds

    if best_lda is None:
        raise SolverFailure(
            f"LDA failed for all {len(seeds)} restarts (seeds={list(seeds)})"
        ) from last_error

    topics = _row_normalize(best_lda.transform(documents))
    terms = _row_normalize(best_lda.components_)
    alpha = float(best_lda.doc_topic_prior_)
    run_time = time.time() - start_time

    convergence_info = {
        'best_seed': best_seed,
        'best_score': best_score,
        'restart_scores': restart_scores,
        'restart_perplexities': restart_perplexities,
        'num_iterations': int(best_lda.n_iter_),
        'alpha_rounds': best_rounds,
        'run_time': run_time,
    }
    metadata = {
        'seeds': list(seeds),
        'num_starts': len(seeds),
        'estimate_alpha': estimate_alpha,
        'initial_doc_topic_prior': initial_alpha,
        'doc_topic_prior': alpha,
        'topic_word_prior': best_lda.topic_word_prior_,
        **params,
    }

    result = ScopicModel(
        topics=topics,
        terms=terms,
        orientation=orientation,
        item_names=item_names,
        document_names=document_names,
        convergence_info=convergence_info,
        metadata=metadata,
    )

    if verbose:
        print(f"Complete Model - {topic_label} Topics: {num_topics} "
              f"(best seed {best_seed}, score {best_score:.2f}, alpha {alpha:.4g}, "
              f"{run_time:.2f} s)")

    return result
