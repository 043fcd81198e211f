"""scopic: topic models for single-cell RNA-Seq counts.

Fits Latent Dirichlet Allocation topic models to scRNA-Seq gene counts and
assigns genes to gene sets OR cells to cell clusters using negative binomial
association tests, FDR control, topic specificity and topic similarity.

Public API
----------
fit_scopic : function
    Fit a multi-restart LDA topic model to a gene counts matrix

run_scopic : function
    Fit the model and assign each gene (or cell) to at most one topic

ScopicModel : class
    Fitted topic model (topic weights and term weights)

ScopicResult : class
    Per-item statistics, assignments and the underlying model

UsageError, SolverFailure : exceptions
    Raised for malformed input and for topic models that cannot be fitted

simulate_topic_counts : function
    Generate synthetic counts with known gene programs for testing

Examples
--------
Assign genes to gene sets:

>>> from scopic import run_scopic, simulate_topic_counts
>>> counts, programs, _ = simulate_topic_counts(seed=42, n_genes=30, n_cells=80, n_topics=3)
>>> stats = run_scopic(counts, orientation='genes', n_topics=3, n_starts=2)
>>> stats['Assignment'].value_counts(dropna=False)

Keep the model alongside the statistics:

>>> result = run_scopic(counts, orientation='cells', n_topics=3, model_return=True)
>>> print(result.summary())
"""

from scopic.scopic import fit_scopic, run_scopic
from scopic._core.results import ScopicModel, ScopicResult
from scopic._core.errors import UsageError, SolverFailure
from scopic.simulation import simulate_topic_counts

__all__ = [
    'fit_scopic',
    'run_scopic',
    'ScopicModel',
    'ScopicResult',
    'UsageError',
    'SolverFailure',
    'simulate_topic_counts',
]

__version__ = '0.1.0'
