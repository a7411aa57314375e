"""Configuration management with YAML loading and validation."""
import os
import yaml
from pathlib import Path
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field, asdict

from dotenv import load_dotenv

from .errors import InvalidConfiguration
from .models import CATEGORIES, NSFW_CATEGORIES, LABEL_PRIORITY

CONFIG_ENV_VAR = "NSFW_SIEVE_CONFIG"
DEFAULT_USER_AGENT = "nsfw-sieve/0.1 (python-httpx; media classification pipeline)"


@dataclass
class ModelConfig:
    """Category taxonomy of the classifier."""
    categories: List[str] = field(default_factory=lambda: list(CATEGORIES))
    nsfw_categories: List[str] = field(default_factory=lambda: list(NSFW_CATEGORIES))
    label_priority: List[str] = field(default_factory=lambda: list(LABEL_PRIORITY))

    def __post_init__(self):
        """Validate label sets against the category list."""
        self.categories = list(self.categories)
        self.nsfw_categories = list(self.nsfw_categories)
        self.label_priority = list(self.label_priority)
        if not self.categories:
            raise ValueError("categories must not be empty")
        if len(set(self.categories)) != len(self.categories):
            raise ValueError(f"categories must be unique, got {self.categories}")
        unknown = set(self.nsfw_categories) - set(self.categories)
        if unknown:
            raise ValueError(f"nsfw_categories not in categories: {sorted(unknown)}")
        if sorted(self.label_priority) != sorted(self.categories):
            raise ValueError(
                f"label_priority must list every category exactly once, got {self.label_priority}"
            )


@dataclass
class SamplingConfig:
    """Frame sampling for gifs and videos."""
    stride: int = 1
    early_stop_on_nsfw: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Check sampling parameters.

        Raises:
            InvalidConfiguration: If stride is not an integer >= 1.
        """
        if isinstance(self.stride, bool) or not isinstance(self.stride, int):
            raise InvalidConfiguration(f"stride must be an integer, got {self.stride!r}")
        if self.stride < 1:
            raise InvalidConfiguration(f"stride must be >= 1, got {self.stride}")


@dataclass
class ExecutorConfig:
    """Worker pool configuration."""
    max_workers: Optional[int] = None
    show_progress: bool = False

    def __post_init__(self):
        """Validate parameters."""
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    def resolve_workers(self) -> int:
        """Worker count, defaulting to available hardware parallelism."""
        if self.max_workers is not None:
            return self.max_workers
        return os.cpu_count() or 1


@dataclass
class RetrievalConfig:
    """HTTP retrieval configuration."""
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 30.0
    max_connections: int = 20
    follow_redirects: bool = True

    def __post_init__(self):
        """Validate parameters."""
        if not self.user_agent:
            raise ValueError("user_agent must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.max_connections < 1:
            raise ValueError(f"max_connections must be >= 1, got {self.max_connections}")


@dataclass
class SystemConfig:
    """System configuration."""
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.log_level.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"log_level must be a standard logging level, got {self.log_level}")


@dataclass
class Config:
    """Master configuration object."""
    model: ModelConfig = field(default_factory=ModelConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Config":
        """Create Config from dictionary."""
        data = data or {}
        return cls(
            model=ModelConfig(**data.get("model", {})),
            sampling=SamplingConfig(**data.get("sampling", {})),
            executor=ExecutorConfig(**data.get("executor", {})),
            retrieval=RetrievalConfig(**data.get("retrieval", {})),
            system=SystemConfig(**data.get("system", {})),
        )


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config.yaml file. If None, uses the
            NSFW_SIEVE_CONFIG environment variable (a .env file is honored),
            then config.yaml in the current directory.

    Returns:
        Config object with validated settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        load_dotenv()
        config_path = Path(os.environ.get(CONFIG_ENV_VAR, "config.yaml"))

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return Config.from_dict(data)


def save_config(config: Config, config_path: Path):
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save.
        config_path: Path to save config.yaml file.
    """
    data = {
        "model": asdict(config.model),
        "sampling": asdict(config.sampling),
        "executor": asdict(config.executor),
        "retrieval": asdict(config.retrieval),
        "system": asdict(config.system),
    }

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
