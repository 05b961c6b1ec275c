"""Line diff models."""

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel


class DiffOpType(str, Enum):
    """Classification of one line in a diff."""

    SAME = "same"
    ADD = "add"
    REMOVE = "remove"


class DiffOp(BaseModel):
    """One line of a diff with its 1-based line number."""

    type: DiffOpType
    line: int
    content: str


class ChangeCounts(NamedTuple):
    additions: int
    removals: int
