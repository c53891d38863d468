# movierate/utils.py
import logging

import pandas as pd


def setup_logging(level: int | str = "INFO") -> None:
    """Configure stdlib logging with a consistent, project-wide format."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def item_titles(items: pd.DataFrame) -> dict[int, str]:
    # movieId -> title, first title wins on duplicate ids
    df = items.drop_duplicates(subset=["movieId"])
    return {int(k): str(v) for k, v in zip(df["movieId"], df["title"])}
