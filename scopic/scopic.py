"""Main user-facing API for scopic.

This module provides the two entry points: fitting a topic model to
scRNA-Seq counts, and running the full assignment of genes to gene sets
(or cells to cell clusters) on top of that model.
"""

import numbers
import warnings
import numpy as np
import pandas as pd
from typing import Union, Optional, List, Sequence, Tuple

from scopic._core.errors import UsageError
from scopic._core.inference import run_lda_inference
from scopic._core.results import ScopicModel, ScopicResult
from scopic._utils.association import run_association_tests, ProgressCallback
from scopic._utils.assignment import assign_topics
from scopic._utils.scoring import (
    fdr_correct,
    topic_specificity,
    relative_expression,
    topic_similarity,
)

ORIENTATIONS = ('genes', 'cells')


def _prepare_counts(
    counts: Union[np.ndarray, pd.DataFrame],
    gene_names: Optional[List],
    cell_names: Optional[List]
) -> Tuple[np.ndarray, List, List]:
    """Validate the counts matrix and resolve gene/cell labels."""
    if isinstance(counts, pd.DataFrame):
        if gene_names is None:
            gene_names = counts.index.tolist()
        if cell_names is None:
            cell_names = counts.columns.tolist()
        counts = counts.values

    try:
        counts_array = np.asarray(counts, dtype=float)
    except (TypeError, ValueError) as e:
        raise UsageError(f"counts must be numeric: {e}") from e

    if counts_array.ndim != 2:
        raise UsageError(f"counts must be 2D (genes x cells), got shape {counts_array.shape}")
    if counts_array.size == 0:
        raise UsageError(f"counts must not be empty, got shape {counts_array.shape}")
    if not np.all(np.isfinite(counts_array)):
        raise UsageError("counts contains missing or infinite values")
    if np.any(counts_array < 0):
        raise UsageError("counts must be non-negative")
    if np.any(np.mod(counts_array, 1) != 0):
        raise UsageError("counts must be integer-valued")

    n_genes, n_cells = counts_array.shape
    if gene_names is None:
        gene_names = list(range(n_genes))
    elif len(gene_names) != n_genes:
        raise UsageError(f"gene_names length ({len(gene_names)}) must match number of genes ({n_genes})")
    if cell_names is None:
        cell_names = list(range(n_cells))
    elif len(cell_names) != n_cells:
        raise UsageError(f"cell_names length ({len(cell_names)}) must match number of cells ({n_cells})")

    return counts_array, list(gene_names), list(cell_names)


def _prepare_seeds(n_starts: int, seeds: Optional[Sequence[int]]) -> List[int]:
    if isinstance(n_starts, bool) or not isinstance(n_starts, numbers.Integral) or n_starts < 1:
        raise UsageError(f"n_starts must be an integer >= 1, got {n_starts!r}")
    if seeds is None:
        return list(range(1, n_starts + 1))
    seeds = list(seeds)
    if len(seeds) != n_starts:
        raise UsageError(f"Number of seeds ({len(seeds)}) must equal n_starts ({n_starts})")
    for seed in seeds:
        if isinstance(seed, bool) or not isinstance(seed, numbers.Integral):
            raise UsageError(f"seeds must be integers, got {seed!r}")
    return [int(s) for s in seeds]


def _check_fit_args(orientation: str, n_topics: int):
    if orientation not in ORIENTATIONS:
        raise UsageError(f"orientation must be 'genes' or 'cells', got {orientation!r}")
    if isinstance(n_topics, bool) or not isinstance(n_topics, numbers.Integral) or n_topics < 1:
        raise UsageError(f"n_topics must be an integer >= 1, got {n_topics!r}")


def _check_threshold(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or np.isnan(value):
        raise UsageError(f"{name} must be a real number, got {value!r}")
    return float(value)


def _fit(
    counts_array: np.ndarray,
    gene_names: List,
    cell_names: List,
    orientation: str,
    n_topics: int,
    seeds: List[int],
    verbose: bool,
    lda_kwargs: dict
) -> ScopicModel:
    # Rows of the fitted matrix are documents; items are its columns.
    if orientation == 'genes':
        documents = counts_array.T
        item_names, document_names = gene_names, cell_names
    else:
        documents = counts_array
        item_names, document_names = cell_names, gene_names

    num_items = documents.shape[1]
    if n_topics >= num_items:
        warnings.warn(f"n_topics ({n_topics}) >= number of {orientation} ({num_items}). "
                      f"Consider using fewer topics for better interpretability.")

    return run_lda_inference(
        documents=documents,
        num_topics=n_topics,
        seeds=seeds,
        orientation=orientation,
        item_names=item_names,
        document_names=document_names,
        verbose=verbose,
        **lda_kwargs
    )


def fit_scopic(
    counts: Union[np.ndarray, pd.DataFrame],
    orientation: str = 'genes',
    n_topics: int = 3,
    n_starts: int = 5,
    seeds: Optional[Sequence[int]] = None,
    verbose: bool = True,
    gene_names: Optional[List] = None,
    cell_names: Optional[List] = None,
    **lda_kwargs
) -> ScopicModel:
    """
    Fit a topic model to scRNA-Seq gene counts.

    Runs variational-EM LDA once per seed and keeps the restart with the
    best approximate log-likelihood. The symmetric Dirichlet
    concentration of the topic weights is estimated along with the
    topic-term distributions.

    Parameters
    ----------
    counts : np.ndarray or pd.DataFrame, shape (G, C)
        Gene counts with genes in rows and cells in columns. Values must be
        non-negative integers. If DataFrame, gene and cell labels are taken
        from the index and columns.

    orientation : {'genes', 'cells'}, default='genes'
        - 'genes': gene set topics. The matrix is transposed before fitting,
          so cells are the documents and topics are distributions over genes.
        - 'cells': cell cluster topics. Genes are the documents and topics
          are distributions over cells.

    n_topics : int, default=3
        Number of topics (transcriptional states).

    n_starts : int, default=5
        Number of random restarts; the best-scoring fit is returned.

    seeds : sequence of int, optional
        One random seed per restart. Default: 1, 2, ..., n_starts.

    verbose : bool, default=True
        Whether to print status updates.

    gene_names, cell_names : list, optional
        Labels for the rows and columns of ``counts``.

    **lda_kwargs : dict
        Solver options. ``estimate_alpha`` (default True) and
        ``alpha_max_rounds`` (default 10) control estimation of the
        document-topic concentration; ``doc_topic_prior`` is its starting
        value (default 1/K). Everything else is passed to
        ``sklearn.decomposition.LatentDirichletAllocation`` (e.g. max_iter,
        topic_word_prior).

    Returns
    -------
    ScopicModel
        Fitted model with ``topics`` (documents x topics) and ``terms``
        (topics x items) weight matrices.

    Raises
    ------
    UsageError
        If the counts are malformed, the orientation is unknown, or the
        number of seeds differs from n_starts.
    SolverFailure
        If every restart fails.

    Examples
    --------
    >>> from scopic import fit_scopic, simulate_topic_counts
    >>> counts, _, _ = simulate_topic_counts(seed=1, n_genes=30, n_cells=60, n_topics=3)
    >>> model = fit_scopic(counts, orientation='genes', n_topics=3, n_starts=2)
    >>> model.terms.shape
    (3, 30)
    """
    _check_fit_args(orientation, n_topics)
    seeds = _prepare_seeds(n_starts, seeds)
    counts_array, gene_names, cell_names = _prepare_counts(counts, gene_names, cell_names)

    return _fit(counts_array, gene_names, cell_names, orientation,
                n_topics, seeds, verbose, lda_kwargs)


def run_scopic(
    counts: Union[np.ndarray, pd.DataFrame],
    orientation: str = 'genes',
    n_topics: int = 3,
    n_starts: int = 5,
    seeds: Optional[Sequence[int]] = None,
    max_q: float = 0.05,
    min_coef: float = 1,
    min_spec: float = 0.1,
    min_sim: float = 0,
    model_return: bool = False,
    verbose: bool = False,
    n_jobs: int = 1,
    regression_max_iter: int = 100,
    progress_callback: Optional[ProgressCallback] = None,
    gene_names: Optional[List] = None,
    cell_names: Optional[List] = None,
    **lda_kwargs
) -> Union[pd.DataFrame, ScopicResult]:
    """
    Fit a topic model and assign genes to gene sets OR cells to cell clusters.

    After fitting, every item (gene or cell, depending on orientation) is
    tested against every topic with a negative binomial regression of its
    counts on the topic weights. The p-values are FDR corrected per topic,
    and each item also gets a topic specificity and a cosine similarity to
    each topic. An item is assigned to a topic when all four statistics pass
    their thresholds; ties go to the smallest q-value.

    Parameters
    ----------
    counts : np.ndarray or pd.DataFrame, shape (G, C)
        Gene counts, genes in rows and cells in columns.

    orientation : {'genes', 'cells'}, default='genes'
        'genes' assigns genes to gene set topics; 'cells' assigns cells to
        cell cluster topics.

    n_topics : int, default=3
        Number of topics.

    n_starts : int, default=5
        Number of random restarts for the topic model.

    seeds : sequence of int, optional
        One seed per restart. Default: 1, 2, ..., n_starts.

    max_q : float, default=0.05
        An item-topic association needs FDR q < max_q.

    min_coef : float, default=1
        An item-topic association needs a regression coefficient > min_coef.

    min_spec : float, default=0.1
        An item-topic association needs specificity > min_spec (0 to 1).

    min_sim : float, default=0
        An item-topic association needs similarity > min_sim (0 to 1).

    model_return : bool, default=False
        If False, return only the statistics table. If True, return a
        ScopicResult bundling the table with the topic and term weights.

    verbose : bool, default=False
        Whether to print status updates.

    n_jobs : int, default=1
        joblib workers for the regressions (-1 uses all cores).

    regression_max_iter : int, default=100
        Iteration cap for each negative binomial regression.

    progress_callback : callable, optional
        Called as ``progress_callback(topic, items_done, num_items)`` during
        the regression pass.

    gene_names, cell_names : list, optional
        Labels for the rows and columns of ``counts``.

    **lda_kwargs : dict
        Passed to the LDA solver.

    Returns
    -------
    pd.DataFrame or ScopicResult
        The statistics table has one row per item and columns
        ``"{k} p"``, ``"{k} FDR q"``, ``"{k} Coef"``, ``"{k} Spec"``,
        ``"{k} Sim"`` for each topic k = 1..n_topics, then ``"Assignment"``
        (nullable integer, ``<NA>`` when unassigned).

    Raises
    ------
    UsageError
        If inputs are malformed.
    SolverFailure
        If the topic model could not be fitted.

    Examples
    --------
    >>> from scopic import run_scopic
    >>> stats = run_scopic(counts, orientation='genes', n_topics=3)
    >>> stats['Assignment'].value_counts()

    >>> result = run_scopic(counts, orientation='cells', n_topics=4, model_return=True)
    >>> result.stats, result.topics, result.terms
    """
    _check_fit_args(orientation, n_topics)
    seeds = _prepare_seeds(n_starts, seeds)
    thresholds = {
        'max_q': _check_threshold('max_q', max_q),
        'min_coef': _check_threshold('min_coef', min_coef),
        'min_spec': _check_threshold('min_spec', min_spec),
        'min_sim': _check_threshold('min_sim', min_sim),
    }
    if isinstance(regression_max_iter, bool) or not isinstance(regression_max_iter, numbers.Integral) \
            or regression_max_iter < 1:
        raise UsageError(f"regression_max_iter must be an integer >= 1, got {regression_max_iter!r}")
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or n_jobs == 0:
        raise UsageError(f"n_jobs must be a non-zero integer, got {n_jobs!r}")
    counts_array, gene_names, cell_names = _prepare_counts(counts, gene_names, cell_names)

    model = _fit(counts_array, gene_names, cell_names, orientation,
                 n_topics, seeds, verbose, lda_kwargs)

    item_counts = counts_array if orientation == 'genes' else counts_array.T

    if verbose:
        print("Evaluate State-Feature Association")
    pvalues, coefficients = run_association_tests(
        item_counts,
        model.topics,
        max_iter=regression_max_iter,
        n_jobs=n_jobs,
        progress_callback=progress_callback,
        verbose=verbose
    )
    if verbose:
        print("Evaluation Complete")

    qvalues = fdr_correct(pvalues)

    specificity = topic_specificity(model.terms)
    if verbose:
        print("Calculate State-Specificity")

    rel_exp = relative_expression(counts_array)
    profiles = rel_exp if orientation == 'genes' else rel_exp.T
    similarity = topic_similarity(profiles, model.topics)
    if verbose:
        print("Calculate State-Similarity")

    assignment = assign_topics(qvalues, coefficients, specificity, similarity, **thresholds)
    if verbose:
        print("State Assignment Complete")

    result = ScopicResult(
        pvalues=pvalues,
        qvalues=qvalues,
        coefficients=coefficients,
        specificity=specificity,
        similarity=similarity,
        assignment=assignment,
        model=model,
        thresholds=thresholds,
        metadata={
            'regression_max_iter': regression_max_iter,
            'n_jobs': n_jobs,
        }
    )

    if model_return:
        return result
    return result.to_dataframe()
