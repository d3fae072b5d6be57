"""
Term-document features for search-result documents.

Turns raw document texts (title + abstract) into the feature matrix the
clustering engine consumes, keeping the vocabulary so cluster labels can be
reported as terms.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
from sklearn.feature_extraction.text import CountVectorizer, TfidfVectorizer

from ..exceptions import InvalidParameterError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

# Alphabetic tokens of two or more letters; numbers never become features
TOKEN_PATTERN = r"(?u)\b[^\W\d_][^\W\d_]+\b"


@dataclass
class TermMatrix:
    """Dense document x term matrix and its vocabulary."""

    features: np.ndarray
    terms: List[str]

    @property
    def shape(self):
        return self.features.shape


def build_term_matrix(
    texts: Sequence[str],
    *,
    weighting: str = "tfidf",
    max_features: int = 5000,
    stop_words: str = "english",
    min_df: int = 1,
) -> TermMatrix:
    """
    Vectorize documents into term features.

    Args:
        texts: One string per document
        weighting: "tfidf" or "count"
        max_features: Vocabulary size cap
        stop_words: Stop word list passed to scikit-learn
        min_df: Minimum document frequency of a term

    Returns:
        TermMatrix with features of shape (n_docs, n_terms)

    Raises:
        InvalidParameterError: If weighting is unknown or no document has any term
    """
    if weighting == "tfidf":
        vectorizer = TfidfVectorizer(
            max_features=max_features,
            stop_words=stop_words,
            lowercase=True,
            token_pattern=TOKEN_PATTERN,
            min_df=min_df,
        )
    elif weighting == "count":
        vectorizer = CountVectorizer(
            max_features=max_features,
            stop_words=stop_words,
            lowercase=True,
            token_pattern=TOKEN_PATTERN,
            min_df=min_df,
        )
    else:
        raise InvalidParameterError(f"weighting must be 'tfidf' or 'count', got {weighting!r}")

    docs = [t if isinstance(t, str) else "" for t in texts]
    try:
        sparse = vectorizer.fit_transform(docs)
    except ValueError as e:
        raise InvalidParameterError("Documents contain no indexable terms") from e

    terms = [str(t) for t in vectorizer.get_feature_names_out()]
    features = np.asarray(sparse.toarray(), dtype=np.float64)
    logger.debug("Term matrix: %d documents x %d terms (%s)", features.shape[0], len(terms), weighting)
    return TermMatrix(features=features, terms=terms)
