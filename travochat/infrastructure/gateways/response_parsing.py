"""
Response field extraction shared by the HTTP gateways.

Status code and message always sit at the top level of a body. User and
session fields sit either at the top level or under the envelope key,
depending on the endpoint's configured ResponseLayout.
"""

from typing import Any, Dict, Optional

from ..config.settings import EndpointSettings, ResponseLayout


def payload_container(body: Dict[str, Any], endpoint: EndpointSettings) -> Optional[Dict[str, Any]]:
    """Return the dict holding user/session fields, or None when absent."""
    if endpoint.layout == ResponseLayout.TOP_LEVEL:
        return body
    container = body.get(endpoint.data_field)
    return container if isinstance(container, dict) else None


def parse_session_id(value: Any) -> int:
    """
    Coerce a wire session value to int.

    None and empty strings mean "no session" (0). Raises ValueError for
    anything that is not an integer in disguise.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"session must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"session must be an integer, got {value!r}")


def parse_user_id(value: Any) -> Optional[str]:
    """User ids travel as numbers or strings; they are kept as strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def parse_status_code(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
