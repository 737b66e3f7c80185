from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientOllama(LLMClientInterface):
    """Local Ollama server (/api/chat, /api/tags)."""

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def _get_endpoint_models(self) -> str:
        return "/api/tags"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    def get_chat_payload(self, messages: list[dict], model: str) -> dict:
        return {"model": model, "messages": messages, "stream": False}

    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if isinstance(content, str):
            return content
        self.logging.debug("Ollama reply without message content (keys: %s).", sorted(response_data))
        return ""

    def extract_models_from_response(self, response_data: dict) -> list[str]:
        return [entry["name"] for entry in response_data.get("models", []) if entry.get("name")]
