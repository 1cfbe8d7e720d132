"""Project version model — the version pair embedded in the archive name."""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ProjectVersion(BaseModel):
    """Major/minor version read from the build configuration."""

    model_config = ConfigDict(frozen=True)

    major: int
    minor: int

    @property
    def label(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def from_cmake(cls, cmake_lists: Path, variable_prefix: str) -> "ProjectVersion":
        """Read ``set(<PREFIX>_MAJOR_VERSION n)`` / ``..._MINOR_VERSION`` lines.

        Raises ``ValueError`` if either variable is missing.
        """
        text = cmake_lists.read_text(encoding="utf-8")
        values: dict[str, int] = {}
        for part in ("MAJOR", "MINOR"):
            pattern = rf"set\({re.escape(variable_prefix)}_{part}_VERSION\s+([0-9]+)\)"
            match = re.search(pattern, text)
            if match is None:
                raise ValueError(
                    f"{variable_prefix}_{part}_VERSION not found in {cmake_lists}"
                )
            values[part.lower()] = int(match.group(1))
        return cls(**values)
