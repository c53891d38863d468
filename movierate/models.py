# movierate/models.py
import threading

import torch
import torch.nn as nn

from movierate.errors import IndexOutOfRange

RATING_MIN = 1.0
RATING_MAX = 5.0
RATING_MID = (RATING_MIN + RATING_MAX) / 2


def scale_rating(raw: torch.Tensor) -> torch.Tensor:
    """Squash a raw score onto [RATING_MIN, RATING_MAX].

    1 + 4 * sigmoid(raw - 3): slope is 1 at the midpoint, so raw scores near 3
    pass through almost unchanged and extreme ones saturate at the scale ends.
    """
    span = RATING_MAX - RATING_MIN
    return RATING_MIN + span * torch.sigmoid(raw - RATING_MID)


def _check_range(idx: torch.Tensor, size: int, name: str) -> None:
    if idx.numel() == 0:
        return
    lo, hi = int(idx.min()), int(idx.max())
    if lo < 0 or hi >= size:
        bad = lo if lo < 0 else hi
        raise IndexOutOfRange(f"{name} {bad} outside [0, {size})")


class MF(nn.Module):
    """Matrix Factorization with user/item biases and a bounded 1-5 output."""
    def __init__(self, n_users: int, n_items: int, dim: int = 8, generator: torch.Generator | None = None):
        super().__init__()
        self.n_users = n_users
        self.n_items = n_items
        self.dim = dim
        self.user = nn.Embedding(n_users, dim)
        self.item = nn.Embedding(n_items, dim)
        self.ubias = nn.Embedding(n_users, 1)
        self.ibias = nn.Embedding(n_items, 1)
        self.register_buffer("global_bias", torch.tensor(RATING_MID))

        nn.init.normal_(self.user.weight, std=0.01, generator=generator)
        nn.init.normal_(self.item.weight, std=0.01, generator=generator)
        nn.init.zeros_(self.ubias.weight)
        nn.init.zeros_(self.ibias.weight)

        # single writer (trainer step) / readers (predict)
        self.param_lock = threading.RLock()

    def raw_score(self, u, i):
        _check_range(u, self.n_users, "userId")
        _check_range(i, self.n_items, "movieId")
        pu = self.user(u)            # [B, dim]
        qi = self.item(i)            # [B, dim]
        dot = (pu * qi).sum(dim=1)   # [B]
        return dot + self.ubias(u).squeeze(1) + self.ibias(i).squeeze(1) + self.global_bias

    def forward(self, u, i):
        return scale_rating(self.raw_score(u, i))

    def predict(self, user_id: int, item_id: int) -> float:
        """Predicted rating for one (user, movie) pair, clamped to [0, 5]."""
        user_id, item_id = int(user_id), int(item_id)
        # checked on the Python ints so huge ids never reach torch.tensor
        if not 0 <= user_id < self.n_users:
            raise IndexOutOfRange(f"userId {user_id} outside [0, {self.n_users})")
        if not 0 <= item_id < self.n_items:
            raise IndexOutOfRange(f"movieId {item_id} outside [0, {self.n_items})")
        u = torch.tensor([user_id], dtype=torch.long)
        i = torch.tensor([item_id], dtype=torch.long)
        with self.param_lock, torch.no_grad():
            rating = float(self(u, i).item())
        return min(RATING_MAX, max(0.0, rating))


def build_model(num_users: int, num_items: int, latent_dim: int = 8, seed: int | None = None) -> MF:
    if num_users < 1 or num_items < 1:
        raise ValueError(f"model needs at least one user and one item, got {num_users}x{num_items}")
    if latent_dim < 1:
        raise ValueError(f"latent_dim must be >= 1, got {latent_dim}")
    generator = torch.Generator().manual_seed(seed) if seed is not None else None
    return MF(n_users=num_users, n_items=num_items, dim=latent_dim, generator=generator)
