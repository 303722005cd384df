from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from trackfit.errors import ConfigError

SUPPORTED_SPORTS = ("cycling",)


@dataclass
class Config:
    input_path: Path = field(default_factory=lambda: Path("samples.json"))
    output_path: Path | None = None  # defaults to input_path with a .fit suffix
    repeat_count: int = 1
    sport: str = "cycling"
    write_summary: bool = False  # also write a YAML read-back next to the .fit

    def __post_init__(self) -> None:
        self.input_path = Path(self.input_path)
        if self.output_path is not None:
            self.output_path = Path(self.output_path)
        if self.repeat_count < 1:
            raise ConfigError(f"repeat_count must be >= 1, got {self.repeat_count}")
        if self.sport not in SUPPORTED_SPORTS:
            raise ConfigError(f"Unsupported sport '{self.sport}' (supported: {', '.join(SUPPORTED_SPORTS)})")

    @property
    def fit_path(self) -> Path:
        if self.output_path is not None:
            return self.output_path
        return self.input_path.with_suffix(".fit")

    @property
    def summary_path(self) -> Path:
        return self.fit_path.with_suffix(".yaml")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Config:
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()  # loads .env from cwd

        repeat_raw = os.environ.get("TRACKFIT_REPEAT_COUNT", "1")
        try:
            repeat_count = int(repeat_raw)
        except ValueError:
            raise ConfigError(f"TRACKFIT_REPEAT_COUNT must be an integer, got '{repeat_raw}'") from None

        return cls(
            input_path=Path(os.environ.get("TRACKFIT_INPUT", "samples.json")),
            output_path=Path(os.environ["TRACKFIT_OUTPUT"]) if os.environ.get("TRACKFIT_OUTPUT") else None,
            repeat_count=repeat_count,
            sport=os.environ.get("TRACKFIT_SPORT", "cycling"),
            write_summary=os.environ.get("TRACKFIT_WRITE_SUMMARY", "false").lower() in ("true", "1", "yes"),
        )
