#!/usr/bin/env python3
"""
Load ratings (remote, local, or the embedded fallback) and train the MF model.

Usage:
  python -m scripts.train_mf --epochs 8 --dim 8
"""

import argparse

from movierate.data import MOVIES_URL, RATINGS_URL
from movierate.session import Session
from movierate.train import TrainConfig
from movierate.utils import setup_logging


def add_train_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--items", type=str, default=MOVIES_URL, help="URL or path of u.item")
    ap.add_argument("--ratings", type=str, default=RATINGS_URL, help="URL or path of u.data")
    ap.add_argument("--timeout", type=float, default=10.0)
    ap.add_argument("--epochs", type=int, default=8)
    ap.add_argument("--dim", type=int, default=8)
    ap.add_argument("--batch", type=int, default=32)
    ap.add_argument("--lr", type=float, default=0.01)
    ap.add_argument("--valid-split", type=float, default=0.1)
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--log-level", type=str, default="WARNING")


def config_from_args(args) -> TrainConfig:
    return TrainConfig(
        latent_dim=args.dim,
        epochs=args.epochs,
        batch_size=args.batch,
        learning_rate=args.lr,
        validation_split=args.valid_split,
        seed=args.seed,
    )


def main():
    ap = argparse.ArgumentParser()
    add_train_args(ap)
    args = ap.parse_args()
    setup_logging(args.log_level)

    session = Session.load(args.items, args.ratings, timeout=args.timeout)
    cfg = config_from_args(args)
    print(f"Training MF: users={session.data.num_users} items={session.data.num_items} "
          f"dim={cfg.latent_dim} (data: {session.data.source})")

    def on_epoch_end(epoch, loss):
        print(f"Epoch {epoch + 1:02d}/{cfg.epochs} | loss {loss:.4f}")

    trained = session.train(cfg, on_epoch_end=on_epoch_end)
    report = trained.report
    if report.val_loss:
        print(f"Final loss {report.final_loss:.4f} | val_loss {report.val_loss[-1]:.4f}")
    else:
        print(f"Final loss {report.final_loss:.4f}")


if __name__ == "__main__":
    main()
