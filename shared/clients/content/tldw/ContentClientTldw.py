from typing import Any

from shared.clients.content.ContentClientInterface import ContentClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ContentClientTldw(ContentClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Tldw"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"X-API-KEY": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/v1/health"

    def _get_endpoint_upload(self) -> str:
        return "/api/v1/media/add"

    def _get_endpoint_media_details(self, media_id: str) -> str:
        return f"/api/v1/media/{media_id}"

    def _get_endpoint_media_metadata(self, media_id: str) -> str:
        return f"/api/v1/media/{media_id}/metadata"

    ################ PAYLOAD BUILDER ##################
    def get_update_payload(self, fields: dict[str, Any]) -> dict:
        return dict(fields)

    def get_metadata_payload(self, safe_metadata: dict[str, Any], merge: bool) -> dict:
        return {"safe_metadata": safe_metadata, "merge": merge}
