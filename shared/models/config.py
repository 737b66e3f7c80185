from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single configuration parameter a client or store requires from the environment.

    Attributes:
        env_key (str): The raw key name; the owner prefixes it (e.g. "BASE_URL" → "CONTENT_TLDW_BASE_URL").
        val_type (str): The expected value type: "string", "number", "bool" or "list".
        default (str | int | bool | list | None): Fallback value. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | bool | list | None = None
