from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "ollama",
    "llm_model": "qwen3:8b",
    "ollama_url": "http://localhost:11434",
    "use_llm": True,
    "db_path": "cyberhoot.db",
    "default_topic": "cybersecurity",
    "question_count": 5,
    "question_language": "English",
    "source_timeout_seconds": 60.0,
    "grading_timeout_seconds": 30.0,
    "tick_interval_seconds": 1.0,
    "max_room_players": 6,
    "idle_ttl_seconds": 1800.0,
    "sweep_interval_seconds": 60.0,
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    use_llm: bool = DEFAULTS["use_llm"]
    db_path: str = DEFAULTS["db_path"]
    default_topic: str = DEFAULTS["default_topic"]
    question_count: int = DEFAULTS["question_count"]
    question_language: str = DEFAULTS["question_language"]
    source_timeout_seconds: float = DEFAULTS["source_timeout_seconds"]
    grading_timeout_seconds: float = DEFAULTS["grading_timeout_seconds"]
    tick_interval_seconds: float = DEFAULTS["tick_interval_seconds"]
    max_room_players: int = DEFAULTS["max_room_players"]
    idle_ttl_seconds: float = DEFAULTS["idle_ttl_seconds"]
    sweep_interval_seconds: float = DEFAULTS["sweep_interval_seconds"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in fields(Settings)}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
