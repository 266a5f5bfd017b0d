"""Walk the ``official``/``unOfficial`` sections of a source document."""
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Tuple, TypeVar

from pool_core.cursor import JSONCursor
from pool_core.errors import MalformedDocument
from pool_core.progress import notify

OFFICIAL = "official"
UNOFFICIAL = "unOfficial"
SECTIONS = (OFFICIAL, UNOFFICIAL)

T = TypeVar("T")


def walk_sections(
    stream: BinaryIO,
    document: str,
    decode: Callable[..., T],
    observer=None,
    every: int = 100,
    fields: Optional[Dict[str, Callable[[JSONCursor], None]]] = None,
    counts: Optional[Dict[str, int]] = None,
    cumulative: bool = False,
) -> Iterator[Tuple[str, T]]:
    """Yield ``(section, record)`` for every element of both sections.

    Other top-level fields are skipped unless ``fields`` maps them to a
    handler that consumes the value. Per-section element counts are written
    into ``counts`` when given. The whole document is consumed before the
    generator finishes.

    Progress fires every ``every`` elements of a section, or of the whole
    document when ``cumulative`` is set. Each section may appear only once.
    """
    cursor = JSONCursor(stream)
    counts = {} if counts is None else counts
    handlers = fields or {}
    total = 0
    if cursor.peek()[0] != 'start_map':
        raise MalformedDocument(f"{document}: top-level value is not an object", cursor.position)
    for key in cursor.iter_fields(document):
        if key not in SECTIONS:
            if key in handlers:
                handlers[key](cursor)
            else:
                cursor.skip_value()
            continue
        if key in counts:
            raise MalformedDocument(f"{document}: duplicate {key} array", cursor.position)
        notify(observer, "section_started", document, key)
        count = 0
        for index in cursor.iter_items(f"{document}.{key}"):
            value = cursor.read_value()
            try:
                record = decode(value, f"{document}.{key}[{index}]")
            except MalformedDocument as e:
                raise MalformedDocument(e.context, cursor.position) from None
            count += 1
            total += 1
            seen = total if cumulative else count
            if every and seen % every == 0:
                notify(observer, "progress", document, key, seen)
            yield key, record
        counts[key] = count
        notify(observer, "section_finished", document, key, count)
    cursor.expect_end()
    if OFFICIAL not in counts:
        raise MalformedDocument(f"{document}: missing {OFFICIAL} array")
