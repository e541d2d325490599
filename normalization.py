"""
Min-max normalization policies for minibatches.

The iterator only ever calls ``policy.apply(batch)``. What "apply" means is
up to the policy:

- PerBatchMinMaxNormalizer refits from scratch on every batch it is given,
  so statistics are local to that batch (the legacy behaviour, default).
- GlobalMinMaxNormalizer is fitted once (on a batch, or streamed over every
  raw batch of an iterator) and afterwards only transforms.

Statistics are per input feature, taken across the batch and time axes.
Labels are never rescaled. A constant feature maps to the lower bound of
the target range.
"""
import logging
import os

import joblib
import numpy as np
from sklearn.exceptions import NotFittedError
from sklearn.preprocessing import MinMaxScaler
from sklearn.utils.validation import check_is_fitted

from batching import Minibatch
from config import NORMALIZATION_RANGE
from errors import NormalizerNotFittedError

logger = logging.getLogger(__name__)


def _flatten(features: np.ndarray) -> np.ndarray:
    # [n, F, T] -> [n*T, F]
    n, f, t = features.shape
    return np.transpose(features, (0, 2, 1)).reshape(n * t, f)


def _unflatten(flat: np.ndarray, shape) -> np.ndarray:
    n, f, t = shape
    return flat.reshape(n, t, f).transpose(0, 2, 1).astype(np.float32)


class NormalizationPolicy:
    """Interface every normalization strategy implements."""

    def __init__(self, feature_range=NORMALIZATION_RANGE):
        self.feature_range = tuple(feature_range)

    def fit(self, batch: Minibatch):
        raise NotImplementedError

    def transform(self, batch: Minibatch) -> Minibatch:
        raise NotImplementedError

    def apply(self, batch: Minibatch) -> Minibatch:
        raise NotImplementedError


class _MinMaxBase(NormalizationPolicy):

    def __init__(self, feature_range=NORMALIZATION_RANGE):
        super().__init__(feature_range)
        self.scaler = MinMaxScaler(feature_range=self.feature_range)

    def is_fitted(self) -> bool:
        try:
            check_is_fitted(self.scaler)
            return True
        except NotFittedError:
            return False

    def fit(self, batch: Minibatch):
        self.scaler = MinMaxScaler(feature_range=self.feature_range)
        self.scaler.fit(_flatten(batch.features))
        return self

    def transform(self, batch: Minibatch) -> Minibatch:
        if not self.is_fitted():
            raise NormalizerNotFittedError("normalizer must be fitted before transform")
        flat = self.scaler.transform(_flatten(batch.features))
        return Minibatch(_unflatten(flat, batch.features.shape), batch.labels)


class PerBatchMinMaxNormalizer(_MinMaxBase):

    def apply(self, batch: Minibatch) -> Minibatch:
        self.fit(batch)
        return self.transform(batch)


class GlobalMinMaxNormalizer(_MinMaxBase):

    def fit_iterator(self, iterator):
        """Stream every complete raw batch of `iterator` through partial_fit."""
        self.scaler = MinMaxScaler(feature_range=self.feature_range)
        seen = 0
        for batch in iterator.iter_raw_batches():
            self.scaler.partial_fit(_flatten(batch.features))
            seen += 1
        if not seen:
            raise NormalizerNotFittedError("no complete batch available to fit on")
        logger.info(f"Global normalizer fitted on {seen} batches")
        return self

    def apply(self, batch: Minibatch) -> Minibatch:
        return self.transform(batch)

    def save(self, path):
        if not self.is_fitted():
            raise NormalizerNotFittedError("refusing to save an unfitted normalizer")
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        joblib.dump({"scaler": self.scaler, "feature_range": self.feature_range}, path)

    @classmethod
    def load(cls, path):
        meta = joblib.load(path)
        norm = cls(feature_range=meta["feature_range"])
        norm.scaler = meta["scaler"]
        return norm
