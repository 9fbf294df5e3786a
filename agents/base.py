"""
RFP Intake - Base Agent Configuration

Provides the LLM abstraction layer supporting multiple providers (OpenAI,
Anthropic, Gemini) and the JSON output parsing shared by every agent.
"""

import json
import os
from typing import Optional

from crewai import LLM

from config.settings import LLMProvider, Settings


_PROVIDER_ENV_KEYS = {
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    LLMProvider.GEMINI: "GOOGLE_API_KEY",
}

# Model prefix understood by CrewAI's LiteLLM routing
_PROVIDER_PREFIXES = {
    LLMProvider.OPENAI: "openai/",
    LLMProvider.ANTHROPIC: "anthropic/",
    LLMProvider.GEMINI: "gemini/",
}


def get_llm(
    app_settings: Settings,
    provider: Optional[LLMProvider] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None
) -> LLM:
    """
    Get an LLM instance for the specified or configured provider.

    Args:
        app_settings: Settings carrying provider, keys and model defaults
        provider: Override the configured provider
        model: Override the configured model
        temperature: Override the configured temperature

    Returns:
        Configured LLM instance for CrewAI
    """
    provider = provider or app_settings.llm_provider
    model = model or app_settings.default_model
    temperature = temperature if temperature is not None else app_settings.llm_temperature

    if provider not in _PROVIDER_PREFIXES:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    # CrewAI reads provider keys from the environment
    api_key = {
        LLMProvider.OPENAI: app_settings.openai_api_key,
        LLMProvider.ANTHROPIC: app_settings.anthropic_api_key,
        LLMProvider.GEMINI: app_settings.google_api_key,
    }[provider]
    if api_key:
        os.environ[_PROVIDER_ENV_KEYS[provider]] = api_key

    prefix = _PROVIDER_PREFIXES[provider]
    return LLM(
        model=model if model.startswith(prefix) else f"{prefix}{model}",
        temperature=temperature
    )


# Common agent configurations
AGENT_VERBOSE = False


def _strip_code_fence(output: str) -> str:
    if "```json" in output:
        start = output.find("```json") + 7
        end = output.find("```", start)
        return output[start:end].strip()
    if "```" in output:
        start = output.find("```") + 3
        end = output.find("```", start)
        return output[start:end].strip()
    return output.strip()


def validate_json_output(output, required_keys: list[str]) -> dict:
    """
    Validate and parse JSON output from an agent.

    Args:
        output: Raw output from the agent (string or an object with `.raw`)
        required_keys: Keys that must be present in the output

    Returns:
        Parsed JSON dict

    Raises:
        ValueError: If output is not a JSON object or is missing required keys
    """
    text = getattr(output, "raw", output)
    if not isinstance(text, str):
        text = str(text)

    text = _strip_code_fence(text)

    # Models sometimes add a sentence around the object
    if not text.startswith("{") and "{" in text and "}" in text:
        text = text[text.find("{"):text.rfind("}") + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON output: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    missing = [key for key in required_keys if key not in data]
    if missing:
        raise ValueError(f"Missing required keys in output: {missing}")

    return data
