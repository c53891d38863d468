# movierate/session.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from movierate.data import MOVIES_URL, RATINGS_URL, RatingsData, load_dataset
from movierate.errors import ModelNotTrained
from movierate.train import EpochCallback, TrainConfig, TrainedModel, Trainer, build_and_train
from movierate.utils import item_titles

logger = logging.getLogger(__name__)


class Session:
    """Owns one dataset, its trainer, and the most recently trained model.

    Each call to `train` starts from a freshly built model; the previous one
    is dropped before the new run begins.
    """

    def __init__(self, data: RatingsData):
        self.data = data
        self.trainer = Trainer()
        self.trained: Optional[TrainedModel] = None
        self._titles = item_titles(data.items)

    @classmethod
    def load(
        cls,
        items_source: str | Path = MOVIES_URL,
        ratings_source: str | Path = RATINGS_URL,
        timeout: float = 10.0,
    ) -> "Session":
        return cls(load_dataset(items_source, ratings_source, timeout=timeout))

    @property
    def is_training(self) -> bool:
        return self.trainer.is_training

    @property
    def ready(self) -> bool:
        return self.trained is not None and not self.is_training

    def train(self, config: Optional[TrainConfig] = None, on_epoch_end: Optional[EpochCallback] = None) -> TrainedModel:
        self.trained = None
        trained = build_and_train(self.data, config, on_epoch_end=on_epoch_end, trainer=self.trainer)
        self.trained = trained
        return trained

    def predict(self, user_id: int, movie_id: int) -> float:
        if self.trained is None:
            raise ModelNotTrained("model is not ready yet; train it first")
        return self.trained.predict(user_id, movie_id)

    def title(self, movie_id: int) -> str:
        return self._titles.get(int(movie_id), f"<movieId {movie_id}>")
