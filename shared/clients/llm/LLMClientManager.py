from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.engine_loader import load_engine_class


class LLMClientManager:
    """Builds the chat completion client selected by LLM_ENGINE ("ollama" or "openai")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _initialize_client(self) -> LLMClientInterface:
        engine = self.helper_config.get_string_val("LLM_ENGINE", default="")
        if not engine:
            raise ValueError("No LLM engine specified in configuration (LLM_ENGINE).")
        client_class = load_engine_class("shared.clients.llm", "LLMClient", engine, "LLM")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated LLM client for engine %s (model %s).", client.get_engine_name(), client.chat_model)
        return client

    def get_client(self) -> LLMClientInterface:
        return self.client
