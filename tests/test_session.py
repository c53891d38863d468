from __future__ import annotations

import pytest
import requests

from movierate import data as data_mod
from movierate.errors import IndexOutOfRange, ModelNotTrained
from movierate.session import Session
from movierate.train import TrainConfig


@pytest.fixture
def offline(monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(data_mod.requests, "get", boom)


def test_session_end_to_end_on_fallback_data(offline) -> None:
    session = Session.load()

    assert session.data.source == "fallback"
    assert session.data.num_users == 4
    assert session.data.num_items == 4
    assert session.title(1) == "Toy Story (1995)"
    assert session.title(42) == "<movieId 42>"

    with pytest.raises(ModelNotTrained):
        session.predict(1, 1)

    epochs = []
    trained = session.train(TrainConfig(epochs=2, seed=5), on_epoch_end=lambda ep, loss: epochs.append(ep))

    assert epochs == [0, 1]
    assert session.ready
    assert session.trained is trained
    assert 0.0 <= session.predict(2, 3) <= 5.0
    with pytest.raises(IndexOutOfRange):
        session.predict(4, 1)


def test_retraining_replaces_the_model(offline) -> None:
    session = Session.load()
    first = session.train(TrainConfig(epochs=1, seed=1))
    second = session.train(TrainConfig(epochs=1, seed=2))

    assert second is not first
    assert second.model is not first.model
    assert session.trained is second
