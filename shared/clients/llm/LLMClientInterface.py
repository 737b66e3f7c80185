from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientInterface(ClientInterface):
    """Single turn, non-streaming chat completions used by the rewrite service.

    Every engine reads ``LLM_<ENGINE>_BASE_URL`` and an optional
    ``LLM_<ENGINE>_API_KEY`` sent as a bearer token. ``LLM_CHAT_MODEL`` names
    the model used when the caller does not pick one.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="default")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    @abstractmethod
    def _get_endpoint_models(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], model: str) -> dict:
        """Request body for one chat call.

        Args:
            messages (list[dict]): OpenAI style messages, e.g. [{"role": "user", "content": "..."}].
            model (str): Model to run.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """First completion text of a chat response, "" when there is none."""
        pass

    @abstractmethod
    def extract_models_from_response(self, response_data: dict) -> list[str]:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_models(self) -> list[str]:
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_models(), raise_on_error=True)
        return self.extract_models_from_response(response.json())

    async def do_chat(self, messages: list[dict], model: str | None = None) -> str:
        """Run one chat completion and return its text.

        Args:
            messages (list[dict]): OpenAI style messages.
            model (str | None): Model override. Falls back to LLM_CHAT_MODEL.

        Returns:
            str: The completion, "" if the backend produced none.

        Raises:
            ClientRequestError: If the backend answers with an error status.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=self.get_chat_payload(messages, model or self.chat_model),
            raise_on_error=True,
        )
        try:
            data = response.json()
        except ValueError:
            # some gateways answer with a bare text body
            return response.text
        return self.extract_chat_response(data)
