from shared.clients.content.ContentClientInterface import ContentClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.engine_loader import load_engine_class


class ContentClientManager:
    """Builds the remote content client selected by CONTENT_ENGINE."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _initialize_client(self) -> ContentClientInterface:
        engine = self.helper_config.get_string_val("CONTENT_ENGINE", default="")
        if not engine:
            raise ValueError("No content engine specified in configuration (CONTENT_ENGINE).")
        client_class = load_engine_class("shared.clients.content", "ContentClient", engine, "content")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated content client for engine: %s", client.get_engine_name())
        return client

    def get_client(self) -> ContentClientInterface:
        return self.client
