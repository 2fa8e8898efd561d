"""Configuration loading."""

from .knowledge import KnowledgeConfig, load_knowledge_config
from .settings import (
    GovernanceSettings,
    KnowledgeSettings,
    ObservabilitySettings,
    ProviderSettings,
    Settings,
    get_settings,
)

__all__ = [
    "GovernanceSettings",
    "KnowledgeConfig",
    "KnowledgeSettings",
    "ObservabilitySettings",
    "ProviderSettings",
    "Settings",
    "get_settings",
    "load_knowledge_config",
]
