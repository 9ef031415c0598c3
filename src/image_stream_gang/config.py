"""
Runtime configuration for the image stream pipeline.

Defaults live here as module constants; the CLI overrides them from argparse.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_OUTPUT_DIR = Path("filtered_images")
DEFAULT_FILTERS = "null,grayscale"
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "image-stream-gang/0.1"


def default_worker_count() -> int:
    """Size the pool for mixed network and CPU work."""
    return min(32, (os.cpu_count() or 1) * 4)


@dataclass
class PipelineConfig:
    """Settings fixed once at startup and shared by every batch."""
    output_dir: Path = DEFAULT_OUTPUT_DIR
    filters: str = DEFAULT_FILTERS
    max_workers: int = field(default_factory=default_worker_count)
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    manifest: Optional[Path] = None
    batch_size: Optional[int] = None
    clear: bool = False

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        if self.manifest is not None:
            self.manifest = Path(self.manifest)
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
