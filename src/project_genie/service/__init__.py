"""Generative service access: the client interface and its provider adapters."""

from project_genie.service.client import (
    ChatMessage,
    ProviderServiceClient,
    ServiceClient,
    build_provider_registry,
    build_service_client,
)

__all__ = [
    "ChatMessage",
    "ProviderServiceClient",
    "ServiceClient",
    "build_provider_registry",
    "build_service_client",
]
