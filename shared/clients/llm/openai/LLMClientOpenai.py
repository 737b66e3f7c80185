from typing import Any

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


def _text_from_content(value: Any) -> str:
    """Flatten a message content value (string, content-part list or part object) to text."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "".join(part for part in (_text_from_content(item) for item in value) if part)
    if isinstance(value, dict):
        text = value.get("text")
        if isinstance(text, str):
            return text
        content = value.get("content")
        if isinstance(content, (str, list)):
            return _text_from_content(content)
    return ""


class LLMClientOpenai(LLMClientInterface):
    """OpenAI-compatible chat completions (OpenAI, vLLM, tldw server, ...)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._chat_path = self.get_config_val("CHAT_PATH", default="/api/v1/chat/completions", val_type="string")
        self._models_path = self.get_config_val("MODELS_PATH", default="/api/v1/models", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return super()._get_required_config() + [
            EnvConfig(env_key="CHAT_PATH", val_type="string", default="/api/v1/chat/completions"),
            EnvConfig(env_key="MODELS_PATH", val_type="string", default="/api/v1/models"),
        ]

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return self._models_path

    def _get_endpoint_models(self) -> str:
        return self._models_path

    def _get_endpoint_chat(self) -> str:
        return self._chat_path

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], model: str) -> dict:
        return {"model": model, "stream": False, "messages": messages}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the first completion from an OpenAI-style response.

        Checks choices[0].message.content, then choices[0].text, then a top-level content.
        """
        if not isinstance(response_data, dict):
            return _text_from_content(response_data)
        raw: Any = None
        choices = response_data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            first = choices[0]
            message = first.get("message") or {}
            raw = message.get("content") if isinstance(message, dict) else None
            if raw is None:
                raw = first.get("text")
        if raw is None:
            raw = response_data.get("content")
        return _text_from_content(raw).strip()

    def extract_models_from_response(self, response_data: dict) -> list[str]:
        models = response_data.get("data") if isinstance(response_data, dict) else None
        if models is None and isinstance(response_data, dict):
            models = response_data.get("models", [])
        names: list[str] = []
        for model in models or []:
            if isinstance(model, str):
                names.append(model)
            elif isinstance(model, dict) and (model.get("id") or model.get("name")):
                names.append(model.get("id") or model.get("name"))
        return names
