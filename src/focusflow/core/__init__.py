"""Core configuration, errors and orchestration."""
