"""Result classes for fitted topic models and topic assignments."""

import numpy as np
import pandas as pd
from typing import Optional, Dict, Any, List

UNASSIGNED = 0

STAT_SUFFIXES = ('p', 'FDR q', 'Coef', 'Spec', 'Sim')


class ScopicModel:
    """
    Encapsulates a fitted LDA topic model of scRNA-Seq counts.

    The model is fitted with documents in rows and terms in columns. Items
    (the genes or cells being assigned to topics) are the terms, so they
    index the columns of ``terms``; ``topics`` is indexed by the
    complementary axis of the counts matrix.

    Attributes
    ----------
    topics : np.ndarray, shape (N, K)
        Topic-weights matrix. topics[n, k] is the weight of topic k in
        document n. Rows sum to 1.

    terms : np.ndarray, shape (K, P)
        Term-weights matrix. terms[k, p] is the probability of item p
        under topic k. Rows sum to 1.

    num_topics : int
        Number of topics (K)

    num_items : int
        Number of items (P): genes for orientation 'genes', cells for 'cells'

    num_documents : int
        Number of documents (N): cells for orientation 'genes', genes for 'cells'

    orientation : str
        'genes' (gene set topics) or 'cells' (cell cluster topics)

    item_names : list
        Item labels (length P)

    document_names : list
        Document labels (length N)

    convergence_info : dict
        Best seed, per-restart scores and perplexities, solver iteration
        count and number of concentration-estimation rounds

    metadata : dict
        Solver settings used for fitting, including the estimated
        document-topic concentration ('doc_topic_prior')
    """

    def __init__(
        self,
        topics: np.ndarray,
        terms: np.ndarray,
        orientation: str,
        item_names: Optional[List] = None,
        document_names: Optional[List] = None,
        convergence_info: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        if topics.ndim != 2:
            raise ValueError(f"topics must be 2D, got shape {topics.shape}")
        if terms.ndim != 2:
            raise ValueError(f"terms must be 2D, got shape {terms.shape}")

        N, K = topics.shape
        K_terms, P = terms.shape
        if K != K_terms:
            raise ValueError(f"Inconsistent topic dimensions: topics={K}, terms={K_terms}")
        if orientation not in ['genes', 'cells']:
            raise ValueError(f"orientation must be 'genes' or 'cells', got '{orientation}'")

        self.topics = topics
        self.terms = terms
        self.orientation = orientation
        self.num_topics = K
        self.num_items = P
        self.num_documents = N

        self.item_names = item_names if item_names is not None else list(range(P))
        self.document_names = document_names if document_names is not None else list(range(N))

        if len(self.item_names) != P:
            raise ValueError(f"item_names length ({len(self.item_names)}) must match P ({P})")
        if len(self.document_names) != N:
            raise ValueError(f"document_names length ({len(self.document_names)}) must match N ({N})")

        self.convergence_info = convergence_info if convergence_info is not None else {}
        self.metadata = metadata if metadata is not None else {}

    @property
    def item_type(self) -> str:
        return 'gene' if self.orientation == 'genes' else 'cell'

    def summary(self) -> str:
        """
        Generate a human-readable summary of the fitted model.

        Returns
        -------
        str
            Summary text
        """
        lines = []
        lines.append("=" * 60)
        lines.append("scopic Topic Model Summary")
        lines.append("=" * 60)
        lines.append("")

        topic_label = 'Gene Set' if self.orientation == 'genes' else 'Cell Cluster'
        lines.append(f"Topic type: {topic_label}")
        lines.append(f"Number of topics: {self.num_topics}")
        lines.append(f"Number of {self.item_type}s (items): {self.num_items}")
        lines.append(f"Number of documents: {self.num_documents}")
        lines.append("")

        lines.append("Fit Information:")
        lines.append(f"  Restarts: {self.metadata.get('num_starts', 'N/A')}")
        lines.append(f"  Best seed: {self.convergence_info.get('best_seed', 'N/A')}")
        best_score = self.convergence_info.get('best_score')
        if isinstance(best_score, float):
            lines.append(f"  Best score: {best_score:.2f}")
        lines.append(f"  Iterations: {self.convergence_info.get('num_iterations', 'N/A')}")
        alpha = self.metadata.get('doc_topic_prior')
        if isinstance(alpha, float):
            lines.append(f"  Alpha: {alpha:.4g}")
        lines.append("")

        lines.append("Topic Prevalence (mean topic weight across documents):")
        prevalence = self.topics.mean(axis=0)
        for k in range(self.num_topics):
            lines.append(f"  Topic {k + 1}: {prevalence[k]:.3f}")
        lines.append("")

        lines.append("=" * 60)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (f"ScopicModel(orientation='{self.orientation}', "
                f"num_items={self.num_items}, "
                f"num_documents={self.num_documents}, "
                f"num_topics={self.num_topics})")

    def get_top_items_per_topic(
        self,
        n: int = 10,
        use_names: bool = True
    ) -> Dict[int, List[tuple]]:
        """
        Get the N items with the largest term weight in each topic.

        Parameters
        ----------
        n : int, default=10
            Number of items per topic (capped at the number of items)
        use_names : bool, default=True
            If True, return item names; if False, return item indices

        Returns
        -------
        dict
            Maps the 1-based topic label to a list of (item, weight) tuples
            sorted by weight, highest first.

        Examples
        --------
        >>> model = fit_scopic(counts, orientation='genes', n_topics=3)
        >>> for topic, genes in model.get_top_items_per_topic(n=5).items():
        ...     print(topic, [g for g, _ in genes])
        """
        results = {}
        for k in range(self.num_topics):
            weights = self.terms[k, :]
            top_indices = np.argsort(weights)[-n:][::-1]
            if use_names:
                results[k + 1] = [(self.item_names[i], weights[i]) for i in top_indices]
            else:
                results[k + 1] = [(int(i), weights[i]) for i in top_indices]
        return results

    def to_dict(self) -> Dict[str, Any]:
        """Convert the model to a dictionary for serialization."""
        return {
            'topics': self.topics,
            'terms': self.terms,
            'orientation': self.orientation,
            'num_topics': self.num_topics,
            'num_items': self.num_items,
            'num_documents': self.num_documents,
            'item_names': self.item_names,
            'document_names': self.document_names,
            'convergence_info': self.convergence_info,
            'metadata': self.metadata,
        }


class ScopicResult:
    """
    Per-item association statistics and topic assignments.

    All statistic arrays have shape (P, K): one row per item (matching the
    column order of ``model.terms``) and one column per topic, in topic
    order. Missing values (failed regressions, undefined similarity) are NaN.

    Attributes
    ----------
    pvalues : np.ndarray
        Negative-binomial regression p-values
    qvalues : np.ndarray
        Benjamini-Hochberg adjusted p-values, per topic column
    coefficients : np.ndarray
        Regression coefficients on the topic weight
    specificity : np.ndarray
        Term weight of each item normalized across topics
    similarity : np.ndarray
        Cosine similarity of relative expression to topic weights
    assignment : np.ndarray, shape (P,)
        1-based topic label per item, 0 for unassigned
    model : ScopicModel
        The fitted topic model the statistics were computed from
    thresholds : dict
        Thresholds used for the assignment (max_q, min_coef, min_spec, min_sim)
    """

    def __init__(
        self,
        pvalues: np.ndarray,
        qvalues: np.ndarray,
        coefficients: np.ndarray,
        specificity: np.ndarray,
        similarity: np.ndarray,
        assignment: np.ndarray,
        model: ScopicModel,
        thresholds: Optional[Dict[str, float]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        expected = (model.num_items, model.num_topics)
        for name, arr in [('pvalues', pvalues), ('qvalues', qvalues),
                          ('coefficients', coefficients),
                          ('specificity', specificity), ('similarity', similarity)]:
            if arr.shape != expected:
                raise ValueError(f"{name} must have shape {expected}, got {arr.shape}")
        if assignment.shape != (model.num_items,):
            raise ValueError(f"assignment must have shape ({model.num_items},), got {assignment.shape}")

        self.pvalues = pvalues
        self.qvalues = qvalues
        self.coefficients = coefficients
        self.specificity = specificity
        self.similarity = similarity
        self.assignment = assignment
        self.model = model
        self.thresholds = thresholds if thresholds is not None else {}
        self.metadata = metadata if metadata is not None else {}

    @property
    def num_topics(self) -> int:
        return self.model.num_topics

    @property
    def num_items(self) -> int:
        return self.model.num_items

    @property
    def item_names(self) -> List:
        return self.model.item_names

    @property
    def topics(self) -> np.ndarray:
        """Topic-weights matrix of the underlying model."""
        return self.model.topics

    @property
    def terms(self) -> np.ndarray:
        """Term-weights matrix of the underlying model."""
        return self.model.terms

    @property
    def stats(self) -> pd.DataFrame:
        """Per-item statistics table (see ``to_dataframe``)."""
        return self.to_dataframe()

    def to_dataframe(self) -> pd.DataFrame:
        """
        Build the per-item statistics table.

        Returns
        -------
        pd.DataFrame
            Indexed by item name, with columns ``"{k} p"``, ``"{k} FDR q"``,
            ``"{k} Coef"``, ``"{k} Spec"``, ``"{k} Sim"`` for each 1-based
            topic k, followed by a nullable integer ``"Assignment"`` column
            (``<NA>`` for unassigned items).
        """
        columns = {}
        for k in range(self.num_topics):
            per_topic = (self.pvalues, self.qvalues, self.coefficients,
                         self.specificity, self.similarity)
            for suffix, arr in zip(STAT_SUFFIXES, per_topic):
                columns[f"{k + 1} {suffix}"] = arr[:, k]

        assignment = pd.array(
            [pd.NA if a == UNASSIGNED else int(a) for a in self.assignment],
            dtype='Int64'
        )
        stats = pd.DataFrame(columns, index=pd.Index(self.item_names))
        stats['Assignment'] = assignment
        return stats

    def get_topic_members(self, topic: int, use_names: bool = True) -> List:
        """
        List the items assigned to a topic.

        Parameters
        ----------
        topic : int
            1-based topic label
        use_names : bool, default=True
            If True, return item names; if False, return item indices

        Returns
        -------
        list
        """
        if topic < 1 or topic > self.num_topics:
            raise ValueError(f"topic must be in [1, {self.num_topics}], got {topic}")
        indices = np.flatnonzero(self.assignment == topic)
        if use_names:
            return [self.item_names[i] for i in indices]
        return indices.tolist()

    def summary(self) -> str:
        """
        Generate a human-readable summary of the assignment.

        Returns
        -------
        str
            Summary text
        """
        lines = []
        lines.append("=" * 60)
        lines.append("scopic Topic Assignment Summary")
        lines.append("=" * 60)
        lines.append("")

        item_type = self.model.item_type
        lines.append(f"Number of {item_type}s: {self.num_items}")
        lines.append(f"Number of topics: {self.num_topics}")
        lines.append("")

        lines.append("Thresholds:")
        for key, value in self.thresholds.items():
            lines.append(f"  {key}: {value}")
        lines.append("")

        lines.append(f"Assigned {item_type}s per topic:")
        for k in range(1, self.num_topics + 1):
            lines.append(f"  Topic {k}: {int(np.sum(self.assignment == k))}")
        lines.append(f"  Unassigned: {int(np.sum(self.assignment == UNASSIGNED))}")
        lines.append("")

        failed = int(np.isnan(self.pvalues).sum())
        lines.append(f"Failed regression fits: {failed} of {self.pvalues.size}")
        lines.append("")

        lines.append("=" * 60)

        return "\n".join(lines)

    def __repr__(self) -> str:
        n_assigned = int(np.sum(self.assignment != UNASSIGNED))
        return (f"ScopicResult(orientation='{self.model.orientation}', "
                f"num_items={self.num_items}, "
                f"num_topics={self.num_topics}, "
                f"num_assigned={n_assigned})")

    def to_dict(self, include_model: bool = True) -> Dict[str, Any]:
        """
        Convert the result to a dictionary for serialization.

        Parameters
        ----------
        include_model : bool, default=True
            If True, include the fitted model under 'model'

        Returns
        -------
        dict
        """
        result_dict = {
            'stats': self.to_dataframe(),
            'topics': self.topics,
            'terms': self.terms,
            'assignment': self.assignment,
            'thresholds': self.thresholds,
            'metadata': self.metadata,
        }
        if include_model:
            result_dict['model'] = self.model.to_dict()
        return result_dict
