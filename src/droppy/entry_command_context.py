import os
import sys
from dataclasses import dataclass, field
from typing import Mapping, TextIO

from droppy.core.paths import Paths
from droppy.core.settings import RuntimeConfig


@dataclass
class CommandContext:
    runtime: RuntimeConfig
    paths: Paths
    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    stderr: TextIO = field(default_factory=lambda: sys.stderr)
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)

    @classmethod
    def from_runtime(cls, runtime: RuntimeConfig, **kwargs) -> "CommandContext":
        return cls(runtime=runtime, paths=Paths.from_runtime(runtime), **kwargs)

    def print_line(self, text: str) -> None:
        print(text, file=self.stdout)

    def print_err(self, text: str) -> None:
        print(text, file=self.stderr)
