from __future__ import annotations

import logging

from fastapi import Request

from corpsebeats.core.config.models import AppConfig
from corpsebeats.core.errors import ConfigurationError
from corpsebeats.core.gateway import InferenceGateway, create_gateway

logger = logging.getLogger(__name__)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_gateway(request: Request) -> InferenceGateway:
    """Return the app's gateway, building it on first use.

    Called inside handlers after input validation, so a missing credential
    is reported only for otherwise valid requests and before any provider call.

    Raises:
        ConfigurationError: No gateway was injected and no provider token is set
    """
    state = request.app.state
    if state.gateway is None:
        config: AppConfig = state.config
        if not config.provider.has_token:
            logger.error("Provider API token is not configured")
            raise ConfigurationError("REPLICATE_API_TOKEN is not set")
        state.gateway = create_gateway(config)
        state.owns_gateway = True
    return state.gateway
