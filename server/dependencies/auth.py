import secrets

from fastapi import Header, HTTPException, Request


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Guard for every review route. Compares the X-Api-Key header with API_SERVER_API_KEY.

    Raises:
        HTTPException: 401 if the key does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("API_SERVER_API_KEY")
    if not secrets.compare_digest(x_api_key.encode(), expected_key.encode()):
        request.app.state.logging.warning(
            "Rejected %s %s: invalid API key.", request.method, request.url.path
        )
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
