#!/usr/bin/env python3
"""Pull-based JSON token cursor with constant memory."""
import ijson
from typing import Any, BinaryIO, Iterator, Optional, Tuple

from pool_core.errors import MalformedDocument

Event = Tuple[str, Any]

_OPEN = ('start_map', 'start_array')
_CLOSE = ('end_map', 'end_array')
_NAMES = {
    'start_map': 'object start',
    'end_map': 'object end',
    'start_array': 'array start',
    'end_array': 'array end',
    'map_key': 'field name',
}


def describe(event: Event) -> str:
    kind, value = event
    if kind in _NAMES:
        return _NAMES[kind] if kind != 'map_key' else f"field name {value!r}"
    return f"{kind} {value!r}"


class JSONCursor:
    """Forward-only cursor over the structural events of a JSON stream.

    Reads ahead at most one event. Parser failures and a premature end of
    input surface as MalformedDocument carrying the event position.
    """

    def __init__(self, stream: BinaryIO):
        self._events = ijson.basic_parse(stream)
        self._pending: Optional[Event] = None
        self.position = 0

    def _pull(self) -> Event:
        try:
            return next(self._events)
        except StopIteration:
            raise MalformedDocument("unexpected end of document", self.position)
        except ijson.JSONError as e:
            raise MalformedDocument(f"invalid JSON: {e}", self.position) from e

    def peek(self) -> Event:
        if self._pending is None:
            self._pending = self._pull()
        return self._pending

    def next(self) -> Event:
        event = self.peek()
        self._pending = None
        self.position += 1
        return event

    def expect(self, kind: str, context: str) -> Event:
        event = self.next()
        if event[0] != kind:
            raise MalformedDocument(
                f"{context}: expected {_NAMES.get(kind, kind)}, got {describe(event)}",
                self.position,
            )
        return event

    def _consume(self, builder=None) -> None:
        depth = 0
        while True:
            event = self.next()
            if builder is not None:
                builder.event(*event)
            if event[0] in _OPEN:
                depth += 1
            elif event[0] in _CLOSE:
                depth -= 1
                if depth < 0:
                    raise MalformedDocument(f"unexpected {describe(event)}", self.position)
            elif event[0] == 'map_key' and depth == 0:
                raise MalformedDocument(f"unexpected {describe(event)}", self.position)
            if depth == 0:
                return

    def skip_value(self) -> None:
        """Consume one complete value without building it."""
        self._consume()

    def read_value(self) -> Any:
        """Consume one complete value and return it as Python objects."""
        builder = ijson.ObjectBuilder()
        self._consume(builder)
        return builder.value

    def iter_fields(self, context: str) -> Iterator[str]:
        """Yield the keys of an object; the caller consumes each value."""
        self.expect('start_map', context)
        while True:
            event = self.next()
            if event[0] == 'end_map':
                return
            if event[0] != 'map_key':
                raise MalformedDocument(
                    f"{context}: expected field name, got {describe(event)}", self.position
                )
            yield event[1]

    def iter_items(self, context: str) -> Iterator[int]:
        """Yield element indexes of an array; the caller consumes each element."""
        self.expect('start_array', context)
        index = 0
        while self.peek()[0] != 'end_array':
            yield index
            index += 1
        self.next()

    def expect_end(self) -> None:
        if self._pending is not None:
            raise MalformedDocument(f"trailing content: {describe(self._pending)}", self.position)
        try:
            event = next(self._events)
        except StopIteration:
            return
        except ijson.JSONError as e:
            raise MalformedDocument(f"trailing content: {e}", self.position) from e
        raise MalformedDocument(f"trailing content: {describe(event)}", self.position)
