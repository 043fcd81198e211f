"""Compare topic assignments to a known ground-truth labelling.

Topic labels are arbitrary, so predicted topics are first matched to true
labels with the Hungarian algorithm on the contingency table.
"""

import numpy as np
import pandas as pd
from typing import Dict, Any, Union, Sequence

from scipy.optimize import linear_sum_assignment
from sklearn.metrics import adjusted_rand_score

from scopic._core.results import ScopicResult, UNASSIGNED


def _as_assignment_array(assignment) -> np.ndarray:
    if isinstance(assignment, ScopicResult):
        return assignment.assignment.copy()
    if isinstance(assignment, pd.DataFrame):
        assignment = assignment['Assignment']
    series = pd.Series(assignment)
    return series.astype('Float64').fillna(UNASSIGNED).to_numpy(dtype=float).astype(int)


def evaluate_assignment(
    assignment: Union[ScopicResult, pd.DataFrame, pd.Series, np.ndarray],
    true_labels: Sequence
) -> Dict[str, Any]:
    """
    Evaluate topic assignments against ground truth.

    Parameters
    ----------
    assignment : ScopicResult, pd.DataFrame, pd.Series or np.ndarray
        Result of run_scopic(), its statistics table, or an assignment
        vector of 1-based topics (0 or NA for unassigned).
    true_labels : sequence
        True label of each item, same length and order as the assignment.

    Returns
    -------
    dict
        - fraction_assigned: share of items given a topic
        - accuracy: share of assigned items whose matched topic equals the
          true label (NaN if nothing is assigned)
        - adjusted_rand_index: ARI between assigned topics and true labels,
          over assigned items only (NaN if nothing is assigned)
        - topic_mapping: dict from predicted topic to matched true label

    Examples
    --------
    >>> from scopic import run_scopic, simulate_topic_counts
    >>> from scopic.evaluation import evaluate_assignment
    >>> counts, programs, _ = simulate_topic_counts(seed=42, n_genes=30, n_cells=80, n_topics=3)
    >>> stats = run_scopic(counts, orientation='genes', n_topics=3)
    >>> metrics = evaluate_assignment(stats, programs)
    >>> print(f"Accuracy: {metrics['accuracy']:.2f}")
    """
    predicted = _as_assignment_array(assignment)
    true_labels = np.asarray(true_labels)
    if predicted.shape != true_labels.shape:
        raise ValueError(f"assignment length ({predicted.shape[0]}) must match "
                         f"true_labels length ({true_labels.shape[0]})")

    assigned = predicted != UNASSIGNED
    n_assigned = int(assigned.sum())
    metrics = {
        'fraction_assigned': n_assigned / len(predicted) if len(predicted) else 0.0,
        'accuracy': np.nan,
        'adjusted_rand_index': np.nan,
        'topic_mapping': {},
    }
    if n_assigned == 0:
        return metrics

    pred = predicted[assigned]
    truth = true_labels[assigned]
    contingency = pd.crosstab(pred, truth)

    rows, cols = linear_sum_assignment(-contingency.values)
    mapping = {int(contingency.index[r]): contingency.columns[c] for r, c in zip(rows, cols)}
    matched = sum(contingency.values[r, c] for r, c in zip(rows, cols))

    metrics['accuracy'] = float(matched) / n_assigned
    metrics['adjusted_rand_index'] = float(adjusted_rand_score(truth, pred))
    metrics['topic_mapping'] = mapping
    return metrics
