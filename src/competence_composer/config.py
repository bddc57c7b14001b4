"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass(frozen=True)
class QueueConfig:
    base_url: str = "http://localhost:3000"
    enqueue_path: str = "/api/ai/queue/enqueue"
    status_path: str = "/api/ai/queue/status"
    poll_interval: float = 1.0
    timeout: float = 120.0
    request_timeout: float = 10.0
    status_retries: int = 3


@dataclass(frozen=True)
class PreviewConfig:
    font: str = "Inter"
    font_size: int = 12
    footer_text: str = ""
    skills_as_tags: bool = False


@dataclass(frozen=True)
class HistoryConfig:
    enabled: bool = True
    db_path: str = "~/.competence-composer/history.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    queue: QueueConfig = field(default_factory=QueueConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        # Look for config.yaml in the working directory, then the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        queue=QueueConfig(**raw.get("queue", {})),
        preview=PreviewConfig(**raw.get("preview", {})),
        history=HistoryConfig(**raw.get("history", {})),
    )
