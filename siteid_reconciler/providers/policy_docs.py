"""
Policy document source.

Each hostname has a policy document; its object metadata carries the site ID
the hostname is expected to route to:
  GET http://{policy_host}/{hostname}  ->  x-goog-meta-pcontext-site-id: <site id>
"""
from __future__ import annotations

import requests

from ..core.errors import PolicySourceError
from .base import PolicyLookup

POLICY_DOCS_HOST = "policy-docs.pantheon.io"
SITE_ID_HEADER = "x-goog-meta-pcontext-site-id"
HTTP_TIMEOUT_S = 15.0


class PolicyDocsSource:
    """Look up expected site IDs from policy documents. Safe to share across threads."""

    def __init__(
        self,
        host: str = POLICY_DOCS_HOST,
        site_id_header: str = SITE_ID_HEADER,
        timeout_s: float = HTTP_TIMEOUT_S,
        scheme: str = "http",
    ) -> None:
        self._host = host.strip("/")
        self._site_id_header = site_id_header
        self._timeout_s = timeout_s
        self._scheme = scheme

    @property
    def source_name(self) -> str:
        return "policy-docs"

    def url_for(self, hostname: str) -> str:
        return f"{self._scheme}://{self._host}/{hostname}"

    def lookup(self, hostname: str) -> PolicyLookup:
        url = self.url_for(hostname)
        try:
            resp = requests.get(url, timeout=self._timeout_s)
        except requests.RequestException as exc:
            raise PolicySourceError(f"GET {url} failed: {exc}") from exc

        if resp.status_code == 404:
            return PolicyLookup(hostname=hostname, found=False)
        if resp.status_code != 200:
            raise PolicySourceError(f"GET {url}: unexpected HTTP {resp.status_code}")

        # A missing header compares as empty and is reported as a mismatch.
        site_id = resp.headers.get(self._site_id_header) or ""
        return PolicyLookup(hostname=hostname, found=True, site_id=site_id)
