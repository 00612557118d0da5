"""
HTTP Identity Gateway
=====================
Registration and identity lookup against the chat service.
"""

from typing import Optional

from ...core.exceptions import ServiceError, ValidationError
from ...core.logger import StructuredLogger, get_logger
from ...domain.interfaces.gateways import IIdentityGateway
from ...domain.models.gateway_results import IdentityStatus, RegistrationResult
from ..config.settings import ApiSettings
from .http_client import ChatServiceClient
from .response_parsing import parse_session_id, parse_status_code, parse_user_id, payload_container


class HttpIdentityGateway(IIdentityGateway):
    """
    IIdentityGateway over the REST endpoints configured in ApiSettings.

    A registration the service declines (e.g. email already registered) is a
    RegistrationResult with accepted=False and the service's message, not an
    exception.
    """

    def __init__(self, client: ChatServiceClient, settings: ApiSettings, logger: Optional[StructuredLogger] = None):
        self.client = client
        self.settings = settings
        self.logger = logger or get_logger(__name__)

    async def register(self, name: str, email: str) -> RegistrationResult:
        name = (name or "").strip()
        email = (email or "").strip()
        if not name:
            raise ValidationError("name", "Please provide both name and email.")
        if not email:
            raise ValidationError("email", "Please provide both name and email.")

        endpoint = self.settings.register
        body = await self.client.request("register", endpoint, {
            endpoint.request_field("name"): name,
            endpoint.request_field("email"): email,
        })

        status_code = parse_status_code(body.get(endpoint.response_field("status_code")))
        message = body.get(endpoint.response_field("message")) or ""
        accepted = status_code == self.settings.success_status_code

        if not accepted:
            self.logger.info("identity_gateway.registration_declined", {
                "status_code": status_code,
                "message": message
            })
            return RegistrationResult(accepted=False, status_code=status_code, message=str(message))

        container = payload_container(body, endpoint) or {}
        user_id = parse_user_id(container.get(endpoint.response_field("user_id")))
        if user_id is None:
            raise ServiceError("register", "accepted registration carries no user id")
        try:
            session_id = parse_session_id(container.get(endpoint.response_field("session_id")))
        except ValueError as e:
            raise ServiceError("register", str(e)) from e

        self.logger.info("identity_gateway.registered", {
            "user_id": user_id,
            "session_id": session_id
        })
        return RegistrationResult(
            accepted=True,
            status_code=status_code,
            message=str(message),
            user_id=user_id,
            session_id=session_id,
        )

    async def check_identity(self, email: str) -> IdentityStatus:
        endpoint = self.settings.check
        body = await self.client.request("check", endpoint, {
            endpoint.request_field("email"): email,
        })

        container = payload_container(body, endpoint)
        if container is None:
            return IdentityStatus(exists=False)

        user_id = parse_user_id(container.get(endpoint.response_field("user_id")))
        try:
            session_id = parse_session_id(container.get(endpoint.response_field("session_id")))
        except ValueError as e:
            raise ServiceError("check", str(e)) from e

        return IdentityStatus(exists=user_id is not None, user_id=user_id, session_id=session_id)
