"""Configuration module."""
from .settings import AppSettings, get_settings
from .credentials import Credentials, PipelineOptions, validate_credentials

__all__ = ["AppSettings", "get_settings", "Credentials", "PipelineOptions", "validate_credentials"]
