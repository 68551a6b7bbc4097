"""InfluxDB line protocol encoding for metric records."""

import re
from typing import Iterable, List, Optional, Tuple

from .metrics import MetricRecord, OfflineRecord, OnlineRecord, UnknownRecord

MEASUREMENT = "a2sinfo"
# Ping reported for a target that did not answer this tick
OFFLINE_PING = -1

# Backslash runs followed by a delimiter or the end of the value
_DANGLING_BACKSLASH = re.compile(r'\\+(?=[, =]|$)')


def escape_tag(value: str) -> str:
    """
    Clean and escape a tag value.

    Drops everything outside printable ASCII, trims surrounding whitespace,
    removes backslashes that would escape a delimiter or end the value,
    then backslash-escapes commas, spaces and equals signs.
    """
    printable = "".join(c for c in value if " " <= c <= "~").strip()
    printable = _DANGLING_BACKSLASH.sub("", printable).strip()
    return (
        printable.replace(",", "\\,")
        .replace(" ", "\\ ")
        .replace("=", "\\=")
    )


def _format_field(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return f"{value}i"


def format_line(tags: List[Tuple[str, str]], fields: List[Tuple[str, object]]) -> str:
    """Build one line from tag and field pairs, omitting empty tags."""
    tag_parts = []
    for key, raw in tags:
        value = escape_tag(raw)
        if value:
            tag_parts.append(f"{key}={value}")

    field_part = ",".join(f"{key}={_format_field(value)}" for key, value in fields)
    return ",".join([MEASUREMENT] + tag_parts) + " " + field_part


def encode_record(record: MetricRecord) -> Optional[str]:
    """
    Encode one record as a line, or None for records that are not written.

    Raises:
        TypeError: If *record* is not a known record type
    """
    if isinstance(record, OnlineRecord):
        result = record.result
        online = True
        ping, num_players, num_bots = result.ping, result.num_players, result.num_bots
    elif isinstance(record, OfflineRecord):
        result = record.cached
        online = False
        ping, num_players, num_bots = OFFLINE_PING, 0, 0
    elif isinstance(record, UnknownRecord):
        return None
    else:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    target = record.target
    tags = [
        ("host", target.identity),
        ("label", target.label),
        ("game_folder", result.folder),
        ("game_name", result.game),
        ("server_name", result.server_name),
        ("map", result.map),
    ]
    fields = [
        ("online", online),
        ("ping", ping),
        ("num_players", num_players),
        ("num_bots", num_bots),
        ("max_players", result.max_players),
        ("game_id", result.game_id),
    ]
    return format_line(tags, fields)


def encode_batch(records: Iterable[MetricRecord]) -> str:
    """Encode records into a newline-terminated batch; empty if nothing to write."""
    lines = [line for line in map(encode_record, records) if line is not None]
    if not lines:
        return ""
    return "\n".join(lines) + "\n"
