#event handlers: the output layer.

# A subscriber session maps the event name it gave RecentUploads to a
# handler. Each handler receives one raw release record (the dict exactly as
# MetaCPAN returned it) and decides what to do with it.
#
# To add a new output target, implement a class with:
#     async def handle(self, release: dict) -> None: ...
# and register its handle method on the subscriber session in main.py.


import logging
from datetime import datetime, timezone
from typing import Any

from metacpan_recent.models import format_dt, parse_dt

log = logging.getLogger(__name__)

_R = "\033[0m"   # reset

_MATURITY_COLOR: dict[str, str] = {
    "released":  "\033[32m",   # green
    "developer": "\033[33m",   # yellow, a trial release
}


def _ts() -> str:
    """ISO 8601 UTC timestamp, e.g. 2026-02-21T12:39:08Z"""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _color_maturity(maturity: str) -> str:
    c = _MATURITY_COLOR.get(maturity.lower(), "")
    return f"{c}{maturity.upper()}{_R}" if c else maturity.upper()


class ConsoleEventHandler:
    """
    Emits one log line per new upload to stdout.

    Format:
        [2026-02-21T12:39:08Z] ETHER | Moose-2.2207 | RELEASED | Uploaded=2026-02-21 12:31:40 UTC | A postmodern object system for Perl 5

    Fields missing from a record print as '?'; the abstract is truncated so
    lines stay scannable in a terminal.
    """

    _MAX_ABSTRACT_LEN = 80

    def __init__(self) -> None:
        self.seen = 0

    async def handle(self, release: dict[str, Any]) -> None:
        self.seen += 1
        print(self._format(release), flush=True)

    def _format(self, r: dict[str, Any]) -> str:
        author   = str(r.get("author") or "?")
        name     = str(r.get("name") or r.get("distribution") or "?")
        maturity = _color_maturity(str(r.get("maturity") or "?"))
        uploaded = format_dt(parse_dt(r.get("date")))
        abstract = self._truncate(str(r.get("abstract") or ""))

        line = f"[{_ts()}] {author} | {name} | {maturity} | Uploaded={uploaded}"
        return f"{line} | {abstract}" if abstract else line

    def _truncate(self, text: str) -> str:
        text = " ".join(text.split())
        if len(text) <= self._MAX_ABSTRACT_LEN:
            return text
        return text[: self._MAX_ABSTRACT_LEN - 1].rstrip() + "…"
