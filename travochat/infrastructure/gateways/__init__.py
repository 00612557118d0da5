"""
Chat service gateways - HTTP implementations of the identity and session ports.
"""

from .http_client import ChatServiceClient
from .identity_gateway import HttpIdentityGateway
from .session_gateway import HttpSessionGateway

__all__ = ['ChatServiceClient', 'HttpIdentityGateway', 'HttpSessionGateway']
