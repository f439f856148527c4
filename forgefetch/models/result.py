from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class FetchMode(str, Enum):
    PINNED = 'pinned'
    HEAD = 'head'

    def __str__(self) -> str:
        return self.value


@dataclass
class ExtractedSource:
    path: Path
    out_var: str
    mode: FetchMode
    head_version: str | None = None

    def to_dict(self) -> dict:
        return {
            'out_var': self.out_var,
            'path': str(self.path),
            'mode': self.mode.value,
            'head_version': self.head_version,
        }
