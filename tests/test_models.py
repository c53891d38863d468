from __future__ import annotations

import pytest
import torch

from movierate.errors import IndexOutOfRange
from movierate.models import MF, build_model, scale_rating


def test_untrained_model_predicts_the_midpoint() -> None:
    model = build_model(num_users=6, num_items=9, latent_dim=8, seed=0)

    for u in range(6):
        for i in range(9):
            assert model.predict(u, i) == pytest.approx(3.0, abs=1e-3)


def test_scale_rating_is_bounded_and_centered() -> None:
    raw = torch.tensor([-1e6, -10.0, 3.0, 10.0, 1e6])
    out = scale_rating(raw)

    assert torch.all(out >= 1.0)
    assert torch.all(out <= 5.0)
    assert out[2].item() == pytest.approx(3.0)
    assert out[0].item() == pytest.approx(1.0)
    assert out[-1].item() == pytest.approx(5.0)


def test_predict_stays_in_range_for_extreme_parameters() -> None:
    model = MF(n_users=3, n_items=3, dim=4)
    with torch.no_grad():
        model.user.weight.fill_(50.0)
        model.item.weight.fill_(50.0)
    assert 0.0 <= model.predict(1, 2) <= 5.0
    assert model.predict(1, 2) == pytest.approx(5.0)

    with torch.no_grad():
        model.item.weight.fill_(-50.0)
        model.ubias.weight.fill_(-100.0)
    assert 0.0 <= model.predict(1, 2) <= 5.0
    assert model.predict(1, 2) == pytest.approx(1.0)


def test_forward_matches_closed_form() -> None:
    model = build_model(num_users=4, num_items=4, latent_dim=3, seed=1)
    with torch.no_grad():
        model.ubias.weight[2] = 0.5
        model.ibias.weight[1] = -0.25
    u = torch.tensor([2])
    i = torch.tensor([1])

    dot = (model.user.weight[2] * model.item.weight[1]).sum()
    expected = 1.0 + 4.0 * torch.sigmoid(dot + 0.5 - 0.25 + 3.0 - 3.0)

    with torch.no_grad():
        assert model(u, i).item() == pytest.approx(expected.item(), rel=1e-6)


def test_predict_out_of_range_user_raises() -> None:
    model = build_model(num_users=4, num_items=4, latent_dim=2, seed=0)

    with pytest.raises(IndexOutOfRange):
        model.predict(4, 1)
    with pytest.raises(IndexError):
        model.predict(1, 4)
    with pytest.raises(IndexOutOfRange):
        model.predict(-1, 1)


def test_build_model_sizes_tables_and_seeds_init() -> None:
    a = build_model(num_users=5, num_items=7, latent_dim=3, seed=123)
    b = build_model(num_users=5, num_items=7, latent_dim=3, seed=123)

    assert a.user.weight.shape == (5, 3)
    assert a.item.weight.shape == (7, 3)
    assert a.ubias.weight.shape == (5, 1)
    assert torch.count_nonzero(a.ibias.weight) == 0
    assert a.global_bias.item() == pytest.approx(3.0)
    assert torch.equal(a.user.weight, b.user.weight)
    assert torch.equal(a.item.weight, b.item.weight)

    with pytest.raises(ValueError):
        build_model(num_users=0, num_items=3)


def test_predict_with_huge_ids_raises_index_out_of_range() -> None:
    model = build_model(num_users=4, num_items=4, latent_dim=2, seed=0)

    with pytest.raises(IndexOutOfRange):
        model.predict(10**20, 1)
    with pytest.raises(IndexOutOfRange):
        model.predict(1, -(10**20))


def test_seeded_build_does_not_reseed_global_rng() -> None:
    torch.manual_seed(99)
    build_model(num_users=5, num_items=5, latent_dim=3, seed=0)
    after_first = torch.rand(4)

    torch.manual_seed(123)
    build_model(num_users=5, num_items=5, latent_dim=3, seed=0)
    after_second = torch.rand(4)

    # a reseeded global RNG would make both draws identical
    assert not torch.equal(after_first, after_second)

    a = build_model(num_users=5, num_items=5, latent_dim=3, seed=4)
    torch.rand(10)
    b = build_model(num_users=5, num_items=5, latent_dim=3, seed=4)
    assert torch.equal(a.user.weight, b.user.weight)
    assert torch.equal(a.item.weight, b.item.weight)
