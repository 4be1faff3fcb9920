from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A configuration key a client requires, validated when the client is constructed.

    Attributes:
        env_key (str): Key suffix, combined with the client type and engine. "BASE_URL" on the
            Qdrant store client resolves to STORE_QDRANT_BASE_URL.
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset.
            None marks the key as mandatory.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
