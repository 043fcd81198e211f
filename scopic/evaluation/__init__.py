"""Evaluation utilities for scopic assignments against ground truth.

This module provides functions for researchers conducting simulation studies
to evaluate how well items are recovered into their true programs.
"""

from scopic.evaluation.evaluate import evaluate_assignment

__all__ = ['evaluate_assignment']
