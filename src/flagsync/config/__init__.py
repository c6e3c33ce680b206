"""Configuration management for the sync engine."""

from .settings import EngineOptions, JobConfiguration, JobsConfig, SyncMode

__all__ = ["EngineOptions", "JobConfiguration", "JobsConfig", "SyncMode"]
