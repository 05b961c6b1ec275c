"""Data models for storepix."""

from .baseline import BaselineRecord
from .change import ChangeKind, ChangeRecord
from .diff import ChangeCounts, DiffOp, DiffOpType

__all__ = [
    "BaselineRecord",
    "ChangeKind",
    "ChangeRecord",
    "ChangeCounts",
    "DiffOp",
    "DiffOpType",
]
