# movierate/train.py
"""
Train the MF model on (userId, movieId, rating) triples.

The trailing `validation_split` fraction is held out without shuffling,
the rest is fed in order as mini-batches to Adam on an MSE loss. After every
epoch the mean training loss goes to the optional progress callback.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import pandas as pd
import torch
import torch.nn as nn
from torch.utils.data import DataLoader

from movierate.data import RatingsData, RatingsDS
from movierate.errors import TrainingAlreadyInProgress, TrainingFailure
from movierate.models import MF, build_model

logger = logging.getLogger(__name__)

EpochCallback = Callable[[int, float], None]


def check_hyperparameters(epochs: int, batch_size: int, learning_rate: float, validation_split: float) -> None:
    """Raise ValueError for hyperparameters no training run can use."""
    if epochs < 1:
        raise ValueError(f"epochs must be >= 1, got {epochs}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    if not learning_rate > 0:
        raise ValueError(f"learning_rate must be > 0, got {learning_rate}")
    if not 0.0 <= validation_split < 1.0:
        raise ValueError(f"validation_split must be in [0, 1), got {validation_split}")


@dataclass(frozen=True)
class TrainConfig:
    latent_dim: int = 8
    epochs: int = 8
    batch_size: int = 32
    learning_rate: float = 0.01
    validation_split: float = 0.1
    seed: Optional[int] = 42

    def __post_init__(self):
        if self.latent_dim < 1:
            raise ValueError(f"latent_dim must be >= 1, got {self.latent_dim}")
        check_hyperparameters(self.epochs, self.batch_size, self.learning_rate, self.validation_split)


@dataclass
class TrainingReport:
    loss: list[float] = field(default_factory=list)
    val_loss: list[float] = field(default_factory=list)
    n_train: int = 0
    n_valid: int = 0

    @property
    def final_loss(self) -> float:
        return self.loss[-1] if self.loss else math.nan


@dataclass
class TrainedModel:
    model: MF
    report: TrainingReport

    def predict(self, user_id: int, movie_id: int) -> float:
        return self.model.predict(user_id, movie_id)


def split_ratings(ratings: pd.DataFrame, validation_split: float) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Hold out the trailing `validation_split` fraction of rows."""
    n_train = math.floor(len(ratings) * (1.0 - validation_split))
    return ratings.iloc[:n_train], ratings.iloc[n_train:]


class Trainer:
    """Runs training passes over an MF model, one run at a time."""

    def __init__(self):
        self._guard = threading.Lock()

    @property
    def is_training(self) -> bool:
        return self._guard.locked()

    def train(
        self,
        model: MF,
        ratings: pd.DataFrame,
        epochs: int = 8,
        batch_size: int = 32,
        learning_rate: float = 0.01,
        validation_split: float = 0.1,
        on_epoch_end: Optional[EpochCallback] = None,
    ) -> TrainingReport:
        """Train `model` in place and return the per-epoch loss trajectory.

        Raises TrainingAlreadyInProgress if this trainer is already running and
        TrainingFailure if a batch fails; in the latter case the parameters keep
        the values written by the last successful step.
        """
        if not self._guard.acquire(blocking=False):
            raise TrainingAlreadyInProgress("a training run is already in progress")
        try:
            return self._run(model, ratings, epochs, batch_size, learning_rate, validation_split, on_epoch_end)
        finally:
            self._guard.release()

    def _run(self, model, ratings, epochs, batch_size, learning_rate, validation_split, on_epoch_end):
        check_hyperparameters(epochs, batch_size, learning_rate, validation_split)
        train_df, valid_df = split_ratings(ratings, validation_split)
        if train_df.empty:
            raise ValueError(
                f"no training rows left: {len(ratings)} ratings with validation_split={validation_split}"
            )

        train_loader = DataLoader(RatingsDS(train_df), batch_size=batch_size, shuffle=False, drop_last=False)
        valid_loader = None
        if not valid_df.empty:
            valid_loader = DataLoader(RatingsDS(valid_df), batch_size=batch_size, shuffle=False, drop_last=False)

        opt = torch.optim.Adam(model.parameters(), lr=learning_rate)
        loss_fn = nn.MSELoss()
        report = TrainingReport(n_train=len(train_df), n_valid=len(valid_df))

        logger.info(
            "Training MF: users=%d items=%d dim=%d train=%d valid=%d",
            model.n_users, model.n_items, model.dim, len(train_df), len(valid_df),
        )
        for ep in range(epochs):
            model.train()
            running, seen = 0.0, 0
            for batch, (u, i, r) in enumerate(train_loader):
                try:
                    with model.param_lock:
                        opt.zero_grad()
                        pred = model(u, i)
                        loss = loss_fn(pred, r)
                        if not torch.isfinite(loss):
                            raise FloatingPointError(f"non-finite loss {loss.item()}")
                        loss.backward()
                        opt.step()
                except Exception as exc:
                    logger.error("Epoch %d batch %d failed: %s", ep + 1, batch, exc)
                    raise TrainingFailure(ep, batch, exc) from exc
                running += loss.item() * len(r)
                seen += len(r)

            train_loss = running / max(seen, 1)
            report.loss.append(train_loss)
            if valid_loader is not None:
                val_loss = self._validate(model, valid_loader, loss_fn, ep)
                report.val_loss.append(val_loss)
                logger.info("Epoch %02d/%d | loss %.4f | val_loss %.4f", ep + 1, epochs, train_loss, val_loss)
            else:
                logger.info("Epoch %02d/%d | loss %.4f", ep + 1, epochs, train_loss)

            if on_epoch_end is not None:
                on_epoch_end(ep, train_loss)

        logger.info("Training completed. Final loss: %.4f", report.final_loss)
        return report

    @staticmethod
    def _validate(model: MF, loader: DataLoader, loss_fn: nn.Module, ep: int) -> float:
        model.eval()
        total_loss, n = 0.0, 0
        with torch.no_grad():
            for batch, (u, i, r) in enumerate(loader):
                try:
                    with model.param_lock:
                        loss = loss_fn(model(u, i), r)
                except Exception as exc:
                    raise TrainingFailure(ep, batch, exc, phase="validation") from exc
                total_loss += loss.item() * len(r)
                n += len(r)
        return total_loss / max(n, 1)


def build_and_train(
    data: RatingsData,
    config: Optional[TrainConfig] = None,
    on_epoch_end: Optional[EpochCallback] = None,
    trainer: Optional[Trainer] = None,
) -> TrainedModel:
    """Size a fresh model from `data`, train it, and return it with its report."""
    cfg = config or TrainConfig()
    trainer = trainer or Trainer()
    if trainer.is_training:
        raise TrainingAlreadyInProgress("a training run is already in progress")
    logger.info(
        "Creating model with %d users, %d movies, latent dimension: %d",
        data.num_users, data.num_items, cfg.latent_dim,
    )
    model = build_model(data.num_users, data.num_items, cfg.latent_dim, seed=cfg.seed)
    report = trainer.train(
        model,
        data.ratings,
        epochs=cfg.epochs,
        batch_size=cfg.batch_size,
        learning_rate=cfg.learning_rate,
        validation_split=cfg.validation_split,
        on_epoch_end=on_epoch_end,
    )
    return TrainedModel(model=model, report=report)
