"""Terminal rendering of health collections with rich."""

from __future__ import annotations

import html
import re

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from flowsetup.health.models import Health, HealthCollection, Status

THEME = Theme({
    "success": "green",
    "error": "bold red",
    "warning": "yellow",
    "code": "black on white",
    "logo": "cyan",
})

LOGO = r"""
        ######            ######
        ########        ########
        ##########    ##########
        ####  ####################
        ####    ######  ########
        ####      ##      ######
        ####              ######
        ####              ######

             Welcome to Flow.
"""

_STATUS_STYLES = {
    Status.OK: "success",
    Status.ERROR: "error",
    Status.WARNING: "warning",
    Status.UNKNOWN: "bold",
    Status.NOT_RUN: "bold",
}

_HTML_TAG = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)([^>]*)>")
_HREF = re.compile(r'href\s*=\s*"([^"]*)"', re.IGNORECASE)

_INLINE_STYLES = {
    "code": "code",
    "b": "bold",
    "strong": "bold",
}


def make_console(**kwargs) -> Console:
    return Console(theme=THEME, highlight=False, **kwargs)


def _text(fragment: str) -> str:
    # entities are decoded before escaping so `&#91;` can never become markup
    return escape(html.unescape(fragment))


def to_rich_markup(message: str) -> str:
    """Convert the inline HTML used in health messages to rich markup."""
    parts: list[str] = []
    links: list[str] = []
    pos = 0
    for match in _HTML_TAG.finditer(message):
        parts.append(_text(message[pos:match.start()]))
        pos = match.end()

        closing, tag = match.group(1) == "/", match.group(2).lower()
        if tag == "br":
            parts.append("\n")
        elif tag in _INLINE_STYLES:
            style = _INLINE_STYLES[tag]
            parts.append(f"[/{style}]" if closing else f"[{style}]")
        elif tag == "a" and not closing:
            href = _HREF.search(match.group(3))
            links.append(href.group(1) if href else "")
        elif tag == "a" and links:
            href = links.pop()
            if href:
                parts.append(f" ({_text(href)})")

    parts.append(_text(message[pos:]))
    return "".join(parts)


def colorize_logo(logo: str = LOGO) -> str:
    return re.sub(r"#+", lambda m: f"[logo]{m.group(0)}[/logo]", logo)


def format_title(health: Health) -> str:
    style = _STATUS_STYLES[health.status]
    title = f"[{style}]{escape(health.title)}[/{style}]"
    if health.status is Status.NOT_RUN:
        title += " (not run)"
    return title


def print_health_collection(console: Console, collection: HealthCollection) -> None:
    for health in collection:
        console.print(format_title(health))
        if health.status is not Status.NOT_RUN:
            console.print(to_rich_markup(health.message))
        console.print()
