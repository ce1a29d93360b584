# decodes a /release/recent response into its list of release records.

# MetaCPAN answers with {"releases": [{...}, ...]}, newest first.
# Anything else (no response, a non-200, a body that is not JSON, a missing
# or non-list "releases") decodes to an empty list: the cycle is simply empty
# and the poller carries on.

import json
import logging
from typing import Any

from metacpan_recent.models import GatewayResponse

log = logging.getLogger(__name__)


def decode_releases(response: GatewayResponse | None) -> list[Any]:
    if response is None or not response.ok:
        return []

    try:
        data = json.loads(response.body)
    except ValueError as exc:   # JSONDecodeError and UnicodeDecodeError both land here
        log.warning("Undecodable /release/recent body: %s", exc)
        return []

    if not isinstance(data, dict):
        log.warning("Unexpected /release/recent payload type: %s", type(data).__name__)
        return []

    releases = data.get("releases")
    if not isinstance(releases, list):
        log.warning("/release/recent payload has no 'releases' list")
        return []

    return releases
