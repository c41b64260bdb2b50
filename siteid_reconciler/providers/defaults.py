"""
Default source construction.

Builds the Fastly service source and the policy document source from
config.yaml settings and the environment.
"""
from __future__ import annotations

import logging
from typing import Optional

from .. import config
from .fastly import FastlyServiceSource
from .policy_docs import PolicyDocsSource

logger = logging.getLogger(__name__)


def create_service_source(
    cfg: Optional[dict] = None,
    api_key: Optional[str] = None,
) -> FastlyServiceSource:
    """Build the Fastly source. Raises ConfigError when FASTLY_API_KEY is missing."""
    cfg = cfg or config.get_config()
    key = api_key or config.fastly_api_key()
    return FastlyServiceSource(
        api_key=key,
        base_url=config.fastly_api_url(cfg),
        timeout_s=config.http_timeout_s(cfg),
    )


def create_policy_source(cfg: Optional[dict] = None) -> PolicyDocsSource:
    """Build the policy document source."""
    cfg = cfg or config.get_config()
    host = config.policy_host(cfg)
    logger.debug("Policy source host: %s", host)
    return PolicyDocsSource(
        host=host,
        site_id_header=config.site_id_header(cfg),
        timeout_s=config.http_timeout_s(cfg),
    )
