# movierate/errors.py


class MovieRateError(Exception):
    """Base class for every error raised by movierate."""


class DataUnavailable(MovieRateError):
    """A ratings or items source could not be fetched or parsed."""


class MalformedRecord(MovieRateError):
    """A single item/rating row could not be parsed."""


class IndexOutOfRange(MovieRateError, IndexError):
    """A user or movie id falls outside the model's embedding tables."""


class TrainingAlreadyInProgress(MovieRateError):
    """A second training run was requested while one is still running."""


class TrainingFailure(MovieRateError):
    """An epoch aborted; parameters keep whatever the last step wrote."""

    def __init__(self, epoch: int, batch: int, cause: BaseException, phase: str = "train"):
        super().__init__(f"{phase} failed at epoch {epoch + 1}, batch {batch}: {cause}")
        self.epoch = epoch
        self.batch = batch
        self.cause = cause
        self.phase = phase


class ModelNotTrained(MovieRateError):
    """Prediction was requested before any training run completed."""
