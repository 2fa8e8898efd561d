"""Tests for settings and the knowledge-store config loader."""

import logging

import pytest
from pydantic import ValidationError

from toolorchestrator.config import (
    GovernanceSettings,
    KnowledgeConfig,
    ObservabilitySettings,
    ProviderSettings,
    load_knowledge_config,
)


class TestKnowledgeConfig:
    def test_json_camel_case_key(self, tmp_path):
        path = tmp_path / "vector-search.json"
        path.write_text('{"vectorStoreIds": ["vs_1", "vs_2"]}')

        assert load_knowledge_config(path) == KnowledgeConfig(vector_store_ids=("vs_1", "vs_2"))

    def test_yaml_snake_case_key(self, tmp_path):
        path = tmp_path / "vector-search.yaml"
        path.write_text("vector_store_ids:\n  - vs_a\n")

        assert load_knowledge_config(path).vector_store_ids == ("vs_a",)

    def test_missing_file_is_empty(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            config = load_knowledge_config(tmp_path / "absent.json")

        assert config.vector_store_ids == ()
        assert "not found" in caplog.text

    @pytest.mark.parametrize(
        "content",
        ['{"vectorStoreIds": ', '["vs_1"]', '{"vectorStoreIds": "vs_1"}', '{"other": []}'],
    )
    def test_unusable_content_is_empty(self, tmp_path, content):
        path = tmp_path / "vector-search.json"
        path.write_text(content)

        assert load_knowledge_config(path) == KnowledgeConfig()


class TestSettings:
    def test_defaults(self, clean_env):
        governance = GovernanceSettings(_env_file=None)
        providers = ProviderSettings(_env_file=None)

        assert governance.max_steps == 10
        assert governance.max_tool_calls == 5
        assert governance.development_mode is False
        assert governance.deadline_seconds is None
        assert providers.default_model == "gpt-4.1-mini"
        assert providers.openrouter_base_url == "https://openrouter.ai/api/v1"
        assert providers.validation_model is None

    def test_environment_aliases(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-env")
        clean_env.setenv("ORCHESTRATOR_MODEL", "gpt-4.1")
        clean_env.setenv("ORCHESTRATOR_VALIDATION_MODEL", "gpt-4.1-nano")
        clean_env.setenv("ORCHESTRATOR_MAX_STEPS", "4")
        clean_env.setenv("ORCHESTRATOR_DEV_MODE", "true")

        providers = ProviderSettings(_env_file=None)
        governance = GovernanceSettings(_env_file=None)

        assert providers.openai_api_key == "sk-env"
        assert providers.default_model == "gpt-4.1"
        assert providers.validation_model == "gpt-4.1-nano"
        assert governance.max_steps == 4
        assert governance.development_mode is True

    def test_budget_must_be_positive(self, clean_env):
        clean_env.setenv("ORCHESTRATOR_MAX_TOOL_CALLS", "0")

        with pytest.raises(ValidationError):
            GovernanceSettings(_env_file=None)

    def test_observability(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "DEBUG")
        clean_env.setenv("LANGCHAIN_TRACING_V2", "true")

        settings = ObservabilitySettings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.tracing_enabled is True
        assert settings.log_prompt_max_length == 500
