"""Trusted proxies — reverse-proxy headers vs. the trusted proxy configuration."""

from __future__ import annotations

import ipaddress
from typing import TYPE_CHECKING

from flowsetup.health.base import Healthcheck
from flowsetup.health.environment import HealthcheckEnvironment, WebEnvironment
from flowsetup.health.models import Health, Status

if TYPE_CHECKING:
    from flowsetup.core.bootstrap import ServiceContainer

DOCS_URL = (
    "https://flowframework.readthedocs.io/en/stable/TheDefinitiveGuide/PartIII/Http.html#trusted-proxies"
)

# Header -> configuration mapping key (clientIp, host, port, proto), None = detection only.
# For headers sharing a mapping key, the first one listed wins.
REVERSE_PROXY_HEADERS: dict[str, str | None] = {
    "X-Forwarded-For": "clientIp",
    "X-Forwarded-Host": "host",
    "X-Forwarded-Port": "port",
    "X-Forwarded-Proto": "proto",
    "X-Real-IP": "clientIp",
    "Forwarded": None,  # RFC 7239
    "True-Client-IP": "clientIp",
    "X-Client-IP": "clientIp",
    "Client-IP": "clientIp",
    # Cloudflare
    "CF-Connecting-IP": "clientIp",
    "CF-Visitor": None,
    "CF-RAY": None,
    "CF-IPCountry": None,
    # AWS
    "X-Amzn-Trace-Id": None,
    "X-Amz-Cf-Id": None,
    "CloudFront-Viewer-Address": "clientIp",
    # Google Cloud
    "X-Cloud-Trace-Context": None,
    # Azure
    "X-Azure-ClientIP": "clientIp",
    "X-ARR-ClientIP": "clientIp",
    # Fastly / other CDNs
    "Fastly-Client-IP": "clientIp",
    "X-Forwarded-Ssl": None,
    "X-Original-Forwarded-For": "clientIp",
    "X-Original-Host": "host",
}


def matches_proxy_pattern(remote_addr: str, patterns: list[str]) -> bool:
    """True if ``remote_addr`` matches ``*``, an IP or a CIDR range."""
    try:
        address = ipaddress.ip_address(remote_addr)
    except ValueError:
        return False
    for pattern in patterns:
        if pattern == "*":
            return True
        try:
            if address in ipaddress.ip_network(pattern, strict=False):
                return True
        except ValueError:
            continue
    return False


def generate_headers_mapping(detected: list[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for header, key in REVERSE_PROXY_HEADERS.items():
        if key is None or key in mapping:
            continue
        if header in detected:
            mapping[key] = header
    return mapping


class TrustedProxiesHealthcheck(Healthcheck):
    def __init__(self, trusted_proxies: list[str]) -> None:
        self.trusted_proxies = trusted_proxies

    @classmethod
    def from_container(cls, container: ServiceContainer) -> TrustedProxiesHealthcheck:
        from flowsetup.config import Settings

        return cls(container.get(Settings).trusted_proxy_list())

    def get_title(self) -> str:
        return "Trusted Proxies Configuration"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        web = environment.execution_environment
        if not isinstance(web, WebEnvironment):
            return Health(
                "",
                "If you are behind a reverse proxy, you need to configure trusted proxies, "
                "to ensure URLs can be properly built. This is possible via the "
                "FLOW_SETUP_TRUSTED_PROXIES environment variable.<br /><br />"
                f'See <a href="{DOCS_URL}">the documentation on trusted proxies</a> for further details.<br /><br />'
                "You can also run the web-based setup at <code>/setup</code>, "
                "which checks if trusted proxies are set up correctly.",
                Status.UNKNOWN,
            )

        detected = [h for h in REVERSE_PROXY_HEADERS if web.has_header(h)]
        remote_addr = web.remote_addr

        if not detected:
            if self.trusted_proxies:
                return Health(
                    "",
                    "No reverse proxy headers detected in the request, but trusted proxies are configured.<br /><br />"
                    "If you are not running behind a reverse proxy, you should remove the "
                    "FLOW_SETUP_TRUSTED_PROXIES configuration. Otherwise, ensure your reverse proxy "
                    "is properly configured to send the expected headers.",
                    Status.WARNING,
                )
            return Health(
                "",
                "No reverse proxy headers detected. Running in direct connection mode.<br />"
                "Trusted proxies configuration is not set, which is correct for this setup.",
                Status.OK,
            )

        message = f"Reverse proxy headers detected: {', '.join(detected)}<br /><br />"
        is_configured = bool(self.trusted_proxies)
        is_trusted = (
            is_configured
            and remote_addr is not None
            and matches_proxy_pattern(remote_addr, self.trusted_proxies)
        )

        if is_trusted:
            return Health(
                "",
                "Reverse proxy configuration appears correct.<br />"
                f"Detected headers: {', '.join(detected)}<br />"
                f"REMOTE_ADDR ({remote_addr}) is configured as a trusted proxy.",
                Status.OK,
            )

        if not is_configured:
            message += "<b>Trusted proxies are not configured.</b> "
        else:
            message += (
                f"The current REMOTE_ADDR {remote_addr} does not match any configured "
                f"trusted proxies {','.join(self.trusted_proxies)}. "
            )
        message += "You need to configure trusted proxies to ensure URLs can be properly built.<br /><br />"

        proxy = remote_addr or "&lt;your-proxy-ip&gt;"
        lines = [
            "Neos:",
            "  Flow:",
            "    http:",
            "      trustedProxies:",
            f"        proxies: ['{proxy}']",
        ]
        mapping = generate_headers_mapping(detected)
        if mapping:
            lines.append("        headers:")
            lines.extend(f"          {key}: '{header}'" for key, header in mapping.items())
        message += "Configure via Settings.yaml:<br /><br /><pre>" + "\n".join(lines) + "</pre>\n"
        message += f"Alternatively, set the FLOW_HTTP_TRUSTED_PROXIES={proxy} environment variable.<br />"
        message += f'See <a href="{DOCS_URL}">the documentation on trusted proxies</a> for further details.'
        return Health("", message, Status.WARNING)
