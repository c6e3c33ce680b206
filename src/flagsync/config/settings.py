"""Configuration settings and models for the sync engine."""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SyncMode(str, Enum):
    """Reconciliation modes."""
    BACKUP = "backup"
    SYNC = "sync"


class JobConfiguration(BaseModel):
    """Configuration for a single backup or sync job.

    The engine never mutates a configuration; it is frozen once built.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    source_path: str  # Directory A
    target_path: str  # Directory B
    mode: SyncMode = SyncMode.BACKUP
    preview: bool = False
    enabled: bool = True

    @field_validator('name', 'source_path', 'target_path')
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('must not be empty')
        return v

    @model_validator(mode='after')
    def validate_distinct_directories(self):
        if self.source_path == self.target_path:
            raise ValueError('source_path and target_path must be different directories')
        return self

    @property
    def directory_a(self) -> str:
        return self.source_path

    @property
    def directory_b(self) -> str:
        return self.target_path

    def __str__(self) -> str:
        return self.name


class EngineOptions(BaseModel):
    """Engine tuning and logging options."""
    copy_chunk_size: int = Field(default=1024 * 1024, gt=0)  # 1MB
    speed_samples: int = Field(default=500, gt=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None


class JobsConfig(BaseModel):
    """Main configuration class: the ordered job list plus engine options."""
    jobs: List[JobConfiguration] = Field(default_factory=list)
    options: EngineOptions = Field(default_factory=EngineOptions)

    @field_validator('jobs')
    @classmethod
    def validate_unique_names(cls, v):
        names = [job.name for job in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate job names: {', '.join(duplicates)}")
        return v

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "JobsConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.model_dump(mode='json', exclude_none=True), f,
                      default_flow_style=False, indent=2, sort_keys=False)

    def get_job_by_name(self, name: str) -> Optional[JobConfiguration]:
        """Get job configuration by name."""
        for job in self.jobs:
            if job.name == name:
                return job
        return None

    def get_enabled_jobs(self) -> List[JobConfiguration]:
        """Get all enabled jobs, in configured order."""
        return [job for job in self.jobs if job.enabled]
