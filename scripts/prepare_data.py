
"""
Fetch the MovieLens 100K files used for training:
- Download u.item (movies) and u.data (ratings) from the demo mirror
- Save them as data/u.item and data/u.data
- Print counts for the parsed tables (fallback sample if a download fails)

Later runs can pass --items data/u.item --ratings data/u.data to skip the network.
"""

import argparse
import json
import logging
from pathlib import Path

from movierate.data import MOVIES_URL, RATINGS_URL, fetch_text, load_dataset
from movierate.errors import DataUnavailable
from movierate.utils import setup_logging

logger = logging.getLogger("prepare_data")


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--data-dir", type=str, default="data", help="Where to write u.item / u.data")
    ap.add_argument("--items", type=str, default=MOVIES_URL, help="URL or path of u.item")
    ap.add_argument("--ratings", type=str, default=RATINGS_URL, help="URL or path of u.data")
    ap.add_argument("--timeout", type=float, default=10.0)
    ap.add_argument("--log-level", type=str, default="INFO")
    args = ap.parse_args()
    setup_logging(args.log_level)

    DATA = Path(args.data_dir)
    DATA.mkdir(parents=True, exist_ok=True)

    for source, name in [(args.items, "u.item"), (args.ratings, "u.data")]:
        try:
            text = fetch_text(source, timeout=args.timeout)
        except DataUnavailable as exc:
            logger.warning("Skipping %s: %s", name, exc)
            continue
        (DATA / name).write_text(text, encoding="utf-8")
        logger.info("Saved %s", DATA / name)

    items_path, ratings_path = DATA / "u.item", DATA / "u.data"
    data = load_dataset(
        items_path if items_path.exists() else args.items,
        ratings_path if ratings_path.exists() else args.ratings,
        timeout=args.timeout,
    )

    meta = {
        "source": data.source,
        "n_users": data.num_users,
        "n_items": data.num_items,
        "n_movies": int(len(data.items)),
        "n_ratings": int(len(data.ratings)),
    }
    print(json.dumps(meta, indent=2))


if __name__ == "__main__":
    main()
