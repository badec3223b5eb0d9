from __future__ import annotations

import logging
from typing import Any, Dict

import structlog
from rich.logging import RichHandler

# Keys printed first, in this order, when an event carries them.
_LEADING_KEYS = ("component", "kind", "status_code", "voice", "preview", "bytes")

_EVENT_ICONS: Dict[str, str] = {
    "server_listening": "🚀",
    "startup_check": "🧪",
    "startup_checks_complete": "🧪",
    "synthesis_request": "🗣️",
    "synthesis_ok": "🔊",
    "audio_url_fetch": "🔗",
}

_LEVEL_STYLES: Dict[str, str] = {
    "critical": "bold red",
    "error": "bold red",
    "warning": "bold yellow",
}


def configure_logging(level: str) -> None:
    """
    Rich console output for stdlib logging, with structlog events rendered onto it.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, markup=True, show_path=False)],
    )

    # uvicorn and httpx log every request at INFO.
    for name in ("httpx", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            _render_event,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        cache_logger_on_first_use=True,
    )


def get_logger(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger().bind(**kwargs)


def _render_event(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:  # pragma: no cover
    event = str(event_dict.pop("event", method_name))
    level = str(event_dict.pop("level", "")).lower()

    icon = _EVENT_ICONS.get(event, "❌" if level in ("error", "critical") else "⚠️" if level == "warning" else "•")
    style = _LEVEL_STYLES.get(level, "bold cyan")
    head = "[%s]%s %s[/%s]" % (style, icon, event, style)

    keys = [k for k in _LEADING_KEYS if k in event_dict]
    keys += sorted(k for k in event_dict if k not in _LEADING_KEYS)
    fields = " ".join("%s=%r" % (k, event_dict[k]) for k in keys)
    return "%s  %s" % (head, fields) if fields else head
