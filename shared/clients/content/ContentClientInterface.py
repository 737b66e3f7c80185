import json
from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.clients.content.models.UploadFile import UploadFile
from shared.clients.content.models.UploadResponse import resolve_media_id
from shared.helper.HelperConfig import HelperConfig


class ContentClientInterface(ClientInterface):
    """Remote content store: upload media, update its fields, merge-patch its metadata."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "content"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upload(self) -> str:
        """Returns the endpoint path for media uploads (e.g. "/api/v1/media/add")."""
        pass

    @abstractmethod
    def _get_endpoint_media_details(self, media_id: str) -> str:
        """Returns the endpoint path for updating a media record (e.g. "/api/v1/media/7")."""
        pass

    @abstractmethod
    def _get_endpoint_media_metadata(self, media_id: str) -> str:
        """Returns the endpoint path for patching a media record's metadata."""
        pass

    ################ PAYLOAD BUILDER ##################
    def get_upload_form(self, fields: dict[str, Any]) -> dict[str, str | list[str]]:
        """Encode upload fields as multipart form values.

        Booleans become "true"/"false", lists become repeated fields, nested
        objects are sent as JSON strings and None values are dropped.

        Args:
            fields (dict[str, Any]): The assembled upload fields.

        Returns:
            dict[str, str | list[str]]: Form data accepted by httpx.
        """
        form: dict[str, str | list[str]] = {}
        for key, value in fields.items():
            if value is None:
                continue
            if isinstance(value, list):
                form[key] = [self._encode_form_value(item) for item in value if item is not None]
            else:
                form[key] = self._encode_form_value(value)
        return form

    def _encode_form_value(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    @abstractmethod
    def get_update_payload(self, fields: dict[str, Any]) -> dict:
        """Build the backend-specific body for a field update request."""
        pass

    @abstractmethod
    def get_metadata_payload(self, safe_metadata: dict[str, Any], merge: bool) -> dict:
        """Build the backend-specific body for a metadata merge-patch request."""
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_media_id(self, response_data: Any) -> str | None:
        """Resolve the created media identifier from an upload response.

        Args:
            response_data (Any): The parsed JSON response body.

        Returns:
            str | None: The identifier, or None when the response carries none.
        """
        return resolve_media_id(response_data)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_upload(self, fields: dict[str, Any], file: UploadFile | None = None) -> Any:
        """Upload a media item.

        Args:
            fields (dict[str, Any]): Upload fields (media type, processing flags, urls, ...).
            file (UploadFile | None): Optional binary payload.

        Returns:
            Any: The parsed JSON response (shape varies, see UploadResponse).

        Raises:
            Exception: If the request fails.
        """
        files = {"files": file.as_httpx_file()} if file is not None else None
        self.logging.debug(
            "Uploading to %s (file=%s, fields=%s)",
            self.get_engine_name(), file.name if file else None, sorted(fields.keys()),
        )
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_upload(),
            data=self.get_upload_form(fields),
            files=files,
            raise_on_error=True,
        )
        try:
            return response.json()
        except ValueError:
            self.logging.warning("Upload response from %s is not JSON.", self.get_engine_name())
            return None

    async def do_update_fields(self, media_id: str, fields: dict[str, Any]) -> None:
        """Update title/content/keywords/analysis/prompt of a media record.

        Raises:
            Exception: If the request fails.
        """
        await self.do_request(
            method="PUT",
            endpoint=self._get_endpoint_media_details(media_id),
            json=self.get_update_payload(fields),
            raise_on_error=True,
        )

    async def do_patch_metadata(self, media_id: str, safe_metadata: dict[str, Any], merge: bool = True) -> None:
        """Merge-patch free-form metadata onto a media record.

        Raises:
            Exception: If the request fails.
        """
        await self.do_request(
            method="PATCH",
            endpoint=self._get_endpoint_media_metadata(media_id),
            json=self.get_metadata_payload(safe_metadata, merge),
            raise_on_error=True,
        )
