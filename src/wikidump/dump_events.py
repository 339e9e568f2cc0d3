#
# Copyright 2021-2022 Lukas Schmelzeisen
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

from __future__ import annotations

from enum import Enum
from logging import getLogger
from typing import IO, Iterator, List, NamedTuple, Optional
from xml.etree.ElementTree import Element, ParseError, XMLPullParser

_LOGGER = getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MiB


class WikiDumpDecodeError(Exception):
    def __init__(self, reason: str, name: Optional[str] = None) -> None:
        self.reason = reason
        self.name = name

    def __str__(self) -> str:
        if self.name:
            return f"{self.reason} (in {self.name})"
        return self.reason


class WikiDumpTagEventKind(Enum):
    START = "start"
    END = "end"
    TEXT = "text"
    END_OF_STREAM = "end-of-stream"


class WikiDumpTagEvent(NamedTuple):
    kind: WikiDumpTagEventKind
    name: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def start(cls, name: str) -> WikiDumpTagEvent:
        return cls(WikiDumpTagEventKind.START, name)

    @classmethod
    def end(cls, name: str) -> WikiDumpTagEvent:
        return cls(WikiDumpTagEventKind.END, name)

    @classmethod
    def text_of(cls, name: str, text: str) -> WikiDumpTagEvent:
        return cls(WikiDumpTagEventKind.TEXT, name, text)

    @classmethod
    def end_of_stream(cls) -> WikiDumpTagEvent:
        return cls(WikiDumpTagEventKind.END_OF_STREAM)


class _OpenElement:
    __slots__ = ("element", "has_children")

    def __init__(self, element: Element) -> None:
        self.element = element
        self.has_children = False


def iter_tag_events(
    fd: IO[bytes],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    name: Optional[str] = None,
) -> Iterator[WikiDumpTagEvent]:
    """Turn a binary XML stream into a forward-only stream of tag events.

    The stream is fed to the XML parser in chunks of chunk_size bytes. Every
    element is discarded as soon as it is closed, so memory usage is bounded by the
    largest single element and not by the size of the stream. The text of an
    element is emitted as one TEXT event right before its END event, but only for
    elements without child elements that actually contain text. Tag names are
    stripped of their XML namespace.

    Raises WikiDumpDecodeError if the stream is not well-formed XML or can not be
    decoded. A stream ending before all elements are closed is not treated as an
    error, it just ends with END_OF_STREAM early.
    """

    parser = XMLPullParser(events=("start", "end"))
    open_elements: List[_OpenElement] = []
    try:
        for chunk in iter(lambda: fd.read(chunk_size), b""):
            parser.feed(chunk)
            yield from _read_events(parser, open_elements)
    except ParseError as e:
        raise WikiDumpDecodeError(f"Malformed XML: {e}", name) from e

    try:
        parser.close()
    except ParseError as e:
        _LOGGER.debug(
            f"Stream {name or ''} ended with {len(open_elements)} unclosed elements: "
            f"{e}"
        )
    else:
        yield from _read_events(parser, open_elements)

    yield WikiDumpTagEvent.end_of_stream()


def _read_events(
    parser: XMLPullParser, open_elements: List[_OpenElement]
) -> Iterator[WikiDumpTagEvent]:
    for event, element in parser.read_events():
        tag = _local_name(element.tag)
        if event == "start":
            if open_elements:
                open_elements[-1].has_children = True
            open_elements.append(_OpenElement(element))
            yield WikiDumpTagEvent.start(tag)
        else:
            closed = open_elements.pop()
            if not closed.has_children and element.text is not None:
                yield WikiDumpTagEvent.text_of(tag, element.text)
            yield WikiDumpTagEvent.end(tag)

            # Closed elements are always the last child of their parent.
            if open_elements:
                open_elements[-1].element.remove(element)
            element.clear()


def _local_name(tag: str) -> str:
    # "{http://www.mediawiki.org/xml/export-0.10/}page" -> "page"
    return tag.rsplit("}", 1)[-1]
