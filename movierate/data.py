# movierate/data.py
"""
Load MovieLens 100K movies and ratings for training:
- Fetch u.item (pipe-delimited) and u.data (tab-delimited) from a URL or local path
- Parse into typed tables, skipping malformed rows
- Fall back to a small embedded sample when a source is unavailable
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pandas as pd
import requests
import torch
from torch.utils.data import Dataset

from movierate.errors import DataUnavailable, MalformedRecord

logger = logging.getLogger(__name__)

MOVIES_URL = (
    "https://raw.githubusercontent.com/tensorflow/tfjs-examples/master/"
    "multivariate-linear-regression/data/uci-iris-mlens-u.item"
)
RATINGS_URL = (
    "https://raw.githubusercontent.com/tensorflow/tfjs-examples/master/"
    "multivariate-linear-regression/data/uci-iris-mlens-u.data"
)

ITEM_COLUMNS = ["movieId", "title"]
RATING_COLUMNS = ["userId", "movieId", "rating"]
MAX_ID = torch.iinfo(torch.long).max

FALLBACK_MOVIES = [
    (1, "Toy Story (1995)"),
    (2, "GoldenEye (1995)"),
    (3, "Four Rooms (1995)"),
    (4, "Get Shorty (1995)"),
    (5, "Copycat (1995)"),
]

FALLBACK_RATINGS = [
    (1, 1, 5.0),
    (1, 2, 3.0),
    (2, 1, 4.0),
    (2, 3, 5.0),
    (3, 2, 4.0),
]


@dataclass(frozen=True)
class RatingsData:
    """Movies plus (userId, movieId, rating) triples.

    Ids are used directly as embedding rows, so the tables are sized
    max id + 1 and row 0 is never trained.
    """

    items: pd.DataFrame
    ratings: pd.DataFrame
    source: str = "remote"

    def __post_init__(self):
        missing = set(RATING_COLUMNS) - set(self.ratings.columns)
        if missing:
            raise ValueError(f"ratings missing required columns: {sorted(missing)}")
        missing = set(ITEM_COLUMNS) - set(self.items.columns)
        if missing:
            raise ValueError(f"items missing required columns: {sorted(missing)}")
        if self.ratings.empty:
            raise ValueError("ratings table is empty")

    @property
    def num_users(self) -> int:
        return int(self.ratings["userId"].max()) + 1

    @property
    def num_items(self) -> int:
        return int(self.ratings["movieId"].max()) + 1

    def triples(self) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        return (
            torch.tensor(self.ratings["userId"].to_numpy(), dtype=torch.long),
            torch.tensor(self.ratings["movieId"].to_numpy(), dtype=torch.long),
            torch.tensor(self.ratings["rating"].to_numpy(), dtype=torch.float32),
        )


class RatingsDS(Dataset):
    def __init__(self, ratings: pd.DataFrame):
        self.u = torch.tensor(ratings["userId"].to_numpy(), dtype=torch.long)
        self.i = torch.tensor(ratings["movieId"].to_numpy(), dtype=torch.long)
        self.r = torch.tensor(ratings["rating"].to_numpy(), dtype=torch.float32)

    def __len__(self): return len(self.r)
    def __getitem__(self, idx): return self.u[idx], self.i[idx], self.r[idx]


def _parse_id(field: str) -> int:
    try:
        value = int(field.strip())
    except ValueError as exc:
        raise MalformedRecord(f"non-integer id {field!r}") from exc
    if value < 1:
        raise MalformedRecord(f"id must be >= 1, got {value}")
    if value > MAX_ID:
        raise MalformedRecord(f"id {value} does not fit in int64")
    return value


def _parse_item_line(line: str) -> tuple[int, str]:
    parts = line.split("|")
    if len(parts) < 2:
        raise MalformedRecord(f"expected at least 2 fields: {line!r}")
    title = parts[1].strip()
    if not title:
        raise MalformedRecord(f"empty title: {line!r}")
    return _parse_id(parts[0]), title


def _parse_rating_line(line: str) -> tuple[int, int, float]:
    parts = line.split("\t")
    if len(parts) < 3:
        raise MalformedRecord(f"expected at least 3 fields: {line!r}")
    try:
        rating = float(parts[2])
    except ValueError as exc:
        raise MalformedRecord(f"non-numeric rating {parts[2]!r}") from exc
    if not math.isfinite(rating):
        raise MalformedRecord(f"non-finite rating {parts[2]!r}")
    return _parse_id(parts[0]), _parse_id(parts[1]), rating


def _parse_lines(text: str, parse_line: Callable[[str], tuple], columns: list[str]) -> pd.DataFrame:
    rows, skipped = [], 0
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            rows.append(parse_line(line))
        except MalformedRecord as exc:
            skipped += 1
            logger.debug("Skipping row: %s", exc)
    if skipped:
        logger.info("Skipped %d malformed rows", skipped)
    return pd.DataFrame(rows, columns=columns)


def parse_items(text: str) -> pd.DataFrame:
    """Parse u.item lines (`id|title|...`) into a movieId/title frame."""
    df = _parse_lines(text, _parse_item_line, ITEM_COLUMNS)
    return df.astype({"movieId": "int64", "title": "object"})


def parse_ratings(text: str) -> pd.DataFrame:
    """Parse u.data lines (`user\\tmovie\\trating\\ttimestamp`) into a ratings frame."""
    df = _parse_lines(text, _parse_rating_line, RATING_COLUMNS)
    return df.astype({"userId": "int64", "movieId": "int64", "rating": "float32"})


def is_remote(source: str | Path) -> bool:
    return str(source).startswith(("http://", "https://"))


def fetch_text(source: str | Path, timeout: float = 10.0) -> str:
    """Return the text behind a URL or a local file path."""
    if is_remote(source):
        try:
            response = requests.get(str(source), timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DataUnavailable(f"could not fetch {source}: {exc}") from exc
        return _decode(response.content)

    path = Path(source)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise DataUnavailable(f"could not read {path}: {exc}") from exc
    return _decode(raw)


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        # u.item ships as latin-1
        return raw.decode("latin-1")


def fallback_items() -> pd.DataFrame:
    return pd.DataFrame(FALLBACK_MOVIES, columns=ITEM_COLUMNS).astype({"movieId": "int64"})


def fallback_ratings() -> pd.DataFrame:
    df = pd.DataFrame(FALLBACK_RATINGS, columns=RATING_COLUMNS)
    return df.astype({"userId": "int64", "movieId": "int64", "rating": "float32"})


def fallback_dataset() -> RatingsData:
    return RatingsData(items=fallback_items(), ratings=fallback_ratings(), source="fallback")


def _load_table(
    source: str | Path,
    parse: Callable[[str], pd.DataFrame],
    fallback: Callable[[], pd.DataFrame],
    what: str,
    timeout: float,
) -> tuple[pd.DataFrame, bool]:
    try:
        df = parse(fetch_text(source, timeout=timeout))
        if df.empty:
            raise DataUnavailable(f"no valid {what} rows in {source}")
    except DataUnavailable as exc:
        logger.warning("Using fallback %s data: %s", what, exc)
        return fallback(), True
    logger.info("Loaded %d %s rows from %s", len(df), what, source)
    return df, False


def load_dataset(
    items_source: str | Path = MOVIES_URL,
    ratings_source: str | Path = RATINGS_URL,
    timeout: float = 10.0,
) -> RatingsData:
    """Load movies and ratings, substituting the embedded sample for any
    source that cannot be fetched or parsed. Never raises for missing data."""
    items, items_fallback = _load_table(items_source, parse_items, fallback_items, "movie", timeout)
    ratings, ratings_fallback = _load_table(
        ratings_source, parse_ratings, fallback_ratings, "rating", timeout
    )

    if items_fallback and ratings_fallback:
        source = "fallback"
    elif items_fallback or ratings_fallback:
        source = "mixed"
    else:
        source = "remote" if is_remote(ratings_source) else "local"

    data = RatingsData(items=items, ratings=ratings, source=source)
    logger.info(
        "Data loaded: %d users, %d movies, %d ratings (source=%s)",
        data.num_users, data.num_items, len(ratings), source,
    )
    return data
