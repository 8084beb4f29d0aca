"""Best-effort decoding of a JSON object that is still being generated."""
from __future__ import annotations

import json
from typing import Any

_CLOSERS = {"{": "}", "[": "]"}


class PartialObjectParser:
    """
    Decodes the longest well-formed prefix of a JSON object as text arrives.

    Open containers are closed at the last point where the prefix is known to
    be complete: just after an opening bracket, just before a comma, or just
    after a closing bracket. Values still being written are left out until
    they finish, so successive results only ever add data.

    Scanner state is kept between ``feed`` calls, so every character is
    scanned once and the prefix is only decoded when a new cut point appears.
    """

    def __init__(self) -> None:
        self._chunks: list[str] = []
        self._length = 0
        self._start = -1
        self._stack: list[str] = []
        self._cut_points: list[tuple[int, str]] = []
        self._decoded_cuts = 0
        self._in_string = False
        self._escaped = False
        self._finished = False
        self.partial: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        if len(self._chunks) > 1:
            self._chunks = ["".join(self._chunks)]
        return self._chunks[0] if self._chunks else ""

    def feed(self, chunk: str) -> dict[str, Any] | None:
        """Add more text; returns the partial object only when it has grown."""
        offset = self._length
        self._chunks.append(chunk)
        self._length += len(chunk)
        if self._finished or not chunk:
            return None

        end = self._scan(chunk, offset)
        if end is not None:
            self._finished = True
            return self._update(_loads_object(self.text[self._start:end]))
        if len(self._cut_points) == self._decoded_cuts:
            return None
        return self._update(self._decode_prefix())

    def _scan(self, chunk: str, offset: int) -> int | None:
        """Advance the scanner; returns the end offset once the outer object closes."""
        for position, char in enumerate(chunk, offset):
            if self._start == -1:
                if char == "{":
                    self._start = position
                    self._stack.append("}")
                    self._cut_points.append((position + 1, "}"))
                continue

            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif char == "\\":
                    self._escaped = True
                elif char == '"':
                    self._in_string = False
                continue

            if char == '"':
                self._in_string = True
            elif char in _CLOSERS:
                self._stack.append(_CLOSERS[char])
                self._cut_points.append((position + 1, "".join(reversed(self._stack))))
            elif char in "}]":
                self._stack.pop()
                if not self._stack:
                    return position + 1
                self._cut_points.append((position + 1, "".join(reversed(self._stack))))
            elif char == ",":
                self._cut_points.append((position, "".join(reversed(self._stack))))
        return None

    def _decode_prefix(self) -> dict[str, Any] | None:
        self._decoded_cuts = len(self._cut_points)
        text = self.text
        for end, closing in reversed(self._cut_points):
            candidate = _loads_object(text[self._start:end] + closing)
            if candidate is not None:
                return candidate
        return None

    def _update(self, candidate: dict[str, Any] | None) -> dict[str, Any] | None:
        if candidate is None or candidate == self.partial:
            return None
        self.partial = candidate
        return candidate


def parse_partial_object(text: str) -> dict[str, Any] | None:
    """
    Decode the longest well-formed prefix of a JSON object in ``text``.

    Returns None while not even the outer object has started.
    """
    parser = PartialObjectParser()
    parser.feed(text)
    return parser.partial


def _loads_object(candidate: str) -> dict[str, Any] | None:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None
