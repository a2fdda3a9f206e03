"""Configuration module for the PBR map synthesis engine."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional, Tuple


BASE_DIR = Path(__file__).resolve().parent.parent

PATH_OUTPUT = BASE_DIR / "exports"

EXPORT_PREFIX = "neurogen"
NORMAL_INTENSITY = 2.0
MASK_RESOLUTION: Tuple[int, int] = (1024, 1024)
RESAMPLE = "bilinear"
THREADS = 4


@dataclass
class PipelineConfig:
    """Runtime configuration for map generation and export."""

    output_path: Path = PATH_OUTPUT
    export_prefix: str = EXPORT_PREFIX
    normal_intensity: float = NORMAL_INTENSITY
    mask_resolution: Tuple[int, int] = MASK_RESOLUTION
    resample: str = RESAMPLE
    include_mask: bool = True
    threads: int = THREADS
    log_file: Path = BASE_DIR / "processing.log"

    def as_dict(self) -> Dict[str, object]:
        """Return the configuration as a plain dictionary."""

        return {
            "PATH_OUTPUT": self.output_path,
            "EXPORT_PREFIX": self.export_prefix,
            "NORMAL_INTENSITY": self.normal_intensity,
            "MASK_RESOLUTION": tuple(self.mask_resolution),
            "RESAMPLE": self.resample,
            "INCLUDE_MASK": self.include_mask,
            "THREADS": self.threads,
            "LOG_FILE": self.log_file,
        }


def build_config(overrides: Optional[Mapping[str, object]] = None) -> Dict[str, object]:
    """Create a configuration dictionary with optional overrides."""

    config = PipelineConfig()
    if overrides:
        mutable: MutableMapping[str, object] = config.as_dict()
        for key, value in overrides.items():
            if key in mutable:
                mutable[key] = value
        return dict(mutable)
    return config.as_dict()
