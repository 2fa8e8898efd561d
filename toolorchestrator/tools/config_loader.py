"""Tool category configuration loader."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

import yaml
from langchain_core.tools import BaseTool

from .registry import DefaultToolRegistry

LOGGER = logging.getLogger(__name__)

DEFAULT_ENABLED_CATEGORIES: Dict[str, bool] = {
    "calendar": True,
    "email": False,
    "web": False,
    "passport": False,
    "file": False,
}


class ToolCategoryConfig:
    """Which tool categories are switched on for this deployment."""

    def __init__(self, config_path: Optional[Path] = None, overrides: Optional[Mapping[str, bool]] = None):
        """Load category switches from a YAML/JSON file.

        Args:
            config_path: Path to the categories file, defaults are used when missing
            overrides: Explicit switches that replace the file entirely
        """
        self.config_path = config_path
        self.enabled = dict(overrides) if overrides is not None else self._load_config()

    def _load_config(self) -> Dict[str, bool]:
        if self.config_path is None or not self.config_path.exists():
            LOGGER.warning(f"Tool categories config not found: {self.config_path}, using defaults")
            return dict(DEFAULT_ENABLED_CATEGORIES)

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            LOGGER.error(f"Failed to load tool categories config: {e}, using defaults")
            return dict(DEFAULT_ENABLED_CATEGORIES)

        if not isinstance(config, dict):
            LOGGER.error(f"Tool categories config {self.config_path} is not a mapping, using defaults")
            return dict(DEFAULT_ENABLED_CATEGORIES)

        LOGGER.info(f"Loaded tool categories from {self.config_path}")
        return {str(name): bool(flag) for name, flag in config.items()}

    def is_enabled(self, category: str) -> bool:
        return self.enabled.get(category, False)

    def get_enabled_categories(self) -> List[str]:
        return sorted(name for name, flag in self.enabled.items() if flag)


def load_tool_category_config(config_path: Union[str, Path, None] = None) -> ToolCategoryConfig:
    """Load tool category switches from file.

    Args:
        config_path: Path to config file (defaults to settings/enabled-tools-categories.yaml)

    Returns:
        ToolCategoryConfig instance
    """
    if config_path is None:
        config_path = Path("settings/enabled-tools-categories.yaml")
    return ToolCategoryConfig(Path(config_path))


def create_tool_registry(
    tools_by_category: Mapping[str, Iterable[BaseTool]],
    config: Optional[ToolCategoryConfig] = None,
) -> DefaultToolRegistry:
    """Register only the tools whose category is enabled.

    Args:
        tools_by_category: Candidate tools grouped by category name
        config: Category switches, loaded from the default path when omitted

    Returns:
        A populated DefaultToolRegistry
    """
    config = config or load_tool_category_config()
    registry = DefaultToolRegistry()
    for category, tools in tools_by_category.items():
        if not config.is_enabled(category):
            LOGGER.info(f"Skipping disabled tool category: {category}")
            continue
        for tool in tools:
            registry.register_tool(tool, category)
    return registry
