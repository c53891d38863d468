#!/usr/bin/env python3
"""
Train on the loaded ratings and print the predicted rating of one movie for one user.
Weights are not saved, so every run trains from scratch.
Usage:
  python -m scripts.recommend --uid 1 --movie 1
"""

import argparse
import sys

from movierate.errors import IndexOutOfRange
from movierate.session import Session
from movierate.utils import setup_logging
from scripts.train_mf import add_train_args, config_from_args

def main():
    ap = argparse.ArgumentParser()
    add_train_args(ap)
    ap.add_argument("--uid", type=int, required=True, help="userId as it appears in u.data")
    ap.add_argument("--movie", type=int, required=True, help="movieId as it appears in u.item")
    args = ap.parse_args()
    setup_logging(args.log_level)

    session = Session.load(args.items, args.ratings, timeout=args.timeout)
    session.train(config_from_args(args))

    try:
        rating = session.predict(args.uid, args.movie)
    except IndexOutOfRange as exc:
        sys.exit(f"Cannot predict: {exc} (users 0..{session.data.num_users - 1}, "
                 f"movies 0..{session.data.num_items - 1})")

    print(f"Predicted rating for {session.title(args.movie)} by User {args.uid}: {rating:.1f}")

if __name__ == "__main__":
    main()
