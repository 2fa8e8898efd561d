"""Knowledge-store configuration loader.

The file lists the vector store identifiers that are injected into knowledge
search calls. It is read once by whoever assembles the orchestrator and handed
over as a plain value; a missing or broken file yields an empty list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import yaml

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KnowledgeConfig:
    """Read-only knowledge-store settings shared by every orchestration."""

    vector_store_ids: Tuple[str, ...] = ()


def load_knowledge_config(config_path: Union[str, Path]) -> KnowledgeConfig:
    """Load vector store ids from a JSON or YAML file.

    Both ``vectorStoreIds`` and ``vector_store_ids`` keys are accepted.

    Args:
        config_path: Path to the configuration file

    Returns:
        KnowledgeConfig, empty when the file is absent or unparseable
    """
    path = Path(config_path)
    if not path.exists():
        LOGGER.warning(f"Knowledge config not found: {path}, no vector stores configured")
        return KnowledgeConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            # JSON is a subset of YAML, so one parser covers both formats
            payload = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        LOGGER.error(f"Failed to load knowledge config {path}: {e}")
        return KnowledgeConfig()

    if not isinstance(payload, dict):
        LOGGER.warning(f"Knowledge config {path} is not a mapping, ignoring it")
        return KnowledgeConfig()

    ids = payload.get("vectorStoreIds", payload.get("vector_store_ids"))
    if not isinstance(ids, list):
        return KnowledgeConfig()

    store_ids = tuple(str(item) for item in ids if isinstance(item, (str, int)))
    LOGGER.info(f"Loaded {len(store_ids)} vector store id(s) from {path}")
    return KnowledgeConfig(vector_store_ids=store_ids)
