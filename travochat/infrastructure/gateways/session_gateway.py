"""
HTTP Session Gateway
====================
Session activation for a known user id.
"""

from typing import Optional

from ...core.exceptions import ServiceError
from ...core.logger import StructuredLogger, get_logger
from ...domain.interfaces.gateways import ISessionGateway
from ...domain.models.gateway_results import SessionActivationResult
from ..config.settings import ApiSettings
from .http_client import ChatServiceClient
from .response_parsing import parse_session_id, parse_status_code, parse_user_id, payload_container


class HttpSessionGateway(ISessionGateway):
    """ISessionGateway over the configured start endpoint"""

    def __init__(self, client: ChatServiceClient, settings: ApiSettings, logger: Optional[StructuredLogger] = None):
        self.client = client
        self.settings = settings
        self.logger = logger or get_logger(__name__)

    async def activate(self, user_id: str) -> SessionActivationResult:
        endpoint = self.settings.start
        body = await self.client.request("start", endpoint, {
            endpoint.request_field("user_id"): user_id,
        })

        # A body without statusCode is accepted; one with a non-success code is a failure
        status_code = parse_status_code(body.get(endpoint.response_field("status_code")))
        if status_code is not None and status_code != self.settings.success_status_code:
            reason = body.get("message") or f"statusCode {status_code}"
            raise ServiceError("start", str(reason), status=status_code)

        container = payload_container(body, endpoint)
        if container is None:
            raise ServiceError("start", f"response has no '{endpoint.data_field}' object")

        try:
            session_id = parse_session_id(container.get(endpoint.response_field("session_id")))
        except ValueError as e:
            raise ServiceError("start", str(e)) from e

        resolved_user_id = parse_user_id(container.get(endpoint.response_field("user_id"))) or str(user_id)

        self.logger.info("session_gateway.activated", {
            "user_id": resolved_user_id,
            "session_id": session_id
        })
        return SessionActivationResult(
            session_id=session_id,
            user_id=resolved_user_id,
            status_code=status_code,
        )
