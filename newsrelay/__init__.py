"""newsrelay: relay new keyword-matching feed items to a chat webhook."""

from .errors import Failure, FailureKind
from .models import Item, compute_item_id
from .pipeline import Pipeline, PipelineState, RunOptions, RunReport

__all__ = [
    "Failure",
    "FailureKind",
    "Item",
    "Pipeline",
    "PipelineState",
    "RunOptions",
    "RunReport",
    "compute_item_id",
]

__version__ = "0.1.0"
