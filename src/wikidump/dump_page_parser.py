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

from datetime import datetime, timezone
from enum import Enum
from logging import getLogger
from typing import (
    IO,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
)

from typing_extensions import Final

from wikidump.datamodel import WikiDumpPage, WikiDumpRevision
from wikidump.dump_events import (
    DEFAULT_CHUNK_SIZE,
    WikiDumpTagEvent,
    WikiDumpTagEventKind,
    iter_tag_events,
)

_LOGGER = getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class WikiDumpMalformedRecordError(Exception):
    def __init__(
        self,
        reason: str,
        page_id: Optional[int] = None,
        revision_id: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.page_id = page_id
        self.revision_id = revision_id

    def __str__(self) -> str:
        return (
            f"{self.reason} (page ID: {self.page_id}, "
            f"revision ID: {self.revision_id})"
        )


class WikiDumpParserState(Enum):
    PAGE = "page"
    REVISION = "revision"
    CONTRIBUTOR = "contributor"
    DONE = "done"


# Revisions of the page currently being parsed, most recent first. Prepending to
# this linked list keeps appending a revision O(1) without mutating the cursor.
_RevisionChain = Optional[Tuple[WikiDumpRevision, "_RevisionChain"]]


class _PageFields(NamedTuple):
    page_id: Optional[int] = None
    namespace: Optional[int] = None
    title: Optional[str] = None
    revisions: _RevisionChain = None

    def is_empty(self) -> bool:
        return self == _EMPTY_PAGE_FIELDS


class _RevisionFields(NamedTuple):
    revision_id: Optional[int] = None
    parent_revision_id: Optional[int] = None
    timestamp: Optional[datetime] = None
    content_model: Optional[str] = None
    content_format: Optional[str] = None
    text: Optional[str] = None
    contributor_id: Optional[int] = None
    contributor_username: Optional[str] = None
    contributor_ip: Optional[str] = None


_EMPTY_PAGE_FIELDS: Final = _PageFields()
_EMPTY_REVISION_FIELDS: Final = _RevisionFields()

# Maps tag names to the field they fill, per state.
_PAGE_TAGS: Final[Mapping[str, str]] = {
    "id": "page_id",
    "ns": "namespace",
    "title": "title",
}
_REVISION_TAGS: Final[Mapping[str, str]] = {
    "id": "revision_id",
    "parentid": "parent_revision_id",
    "timestamp": "timestamp",
    "model": "content_model",
    "format": "content_format",
    "text": "text",
}
_CONTRIBUTOR_TAGS: Final[Mapping[str, str]] = {
    "id": "contributor_id",
    "username": "contributor_username",
    "ip": "contributor_ip",
}
_INT_FIELDS: Final = frozenset(
    {"page_id", "namespace", "revision_id", "parent_revision_id", "contributor_id"}
)


class WikiDumpParserCursor(NamedTuple):
    state: WikiDumpParserState = WikiDumpParserState.PAGE
    # Field that receives the text of the currently open element, if any.
    field: Optional[str] = None
    page: _PageFields = _EMPTY_PAGE_FIELDS
    revision: _RevisionFields = _EMPTY_REVISION_FIELDS
    num_dropped_pages: int = 0
    num_dropped_revisions: int = 0


def step(
    cursor: WikiDumpParserCursor, event: WikiDumpTagEvent, *, strict: bool = False
) -> Tuple[WikiDumpParserCursor, Optional[WikiDumpPage]]:
    """Advance the parser by one tag event.

    Returns the new cursor and the page that was completed by this event, if any.
    Pages and revisions that miss mandatory fields are dropped (and counted in the
    cursor), unless strict is set, in which case WikiDumpMalformedRecordError is
    raised instead.
    """

    state = cursor.state
    kind = event.kind

    if state == WikiDumpParserState.DONE:
        return cursor, None

    if kind == WikiDumpTagEventKind.END_OF_STREAM:
        inside_page = state != WikiDumpParserState.PAGE or not cursor.page.is_empty()
        if strict and inside_page:
            raise WikiDumpMalformedRecordError(
                "Stream ended inside of a page", page_id=cursor.page.page_id
            )
        if inside_page:
            _LOGGER.debug(
                f"Stream ended inside of page {cursor.page.page_id}, discarding it."
            )
        return cursor._replace(state=WikiDumpParserState.DONE, field=None), None

    if kind == WikiDumpTagEventKind.TEXT:
        if cursor.field is None or event.text is None:
            return cursor, None
        return _capture(cursor, cursor.field, event.text), None

    if kind == WikiDumpTagEventKind.START:
        if state == WikiDumpParserState.PAGE:
            if event.name == "revision":
                return (
                    cursor._replace(
                        state=WikiDumpParserState.REVISION,
                        field=None,
                        revision=_EMPTY_REVISION_FIELDS,
                    ),
                    None,
                )
            return cursor._replace(field=_PAGE_TAGS.get(event.name or "")), None
        elif state == WikiDumpParserState.REVISION:
            if event.name == "contributor":
                return (
                    cursor._replace(state=WikiDumpParserState.CONTRIBUTOR, field=None),
                    None,
                )
            return cursor._replace(field=_REVISION_TAGS.get(event.name or "")), None
        else:
            return cursor._replace(field=_CONTRIBUTOR_TAGS.get(event.name or "")), None

    # WikiDumpTagEventKind.END
    cursor = cursor._replace(field=None)
    if event.name == "contributor" and state == WikiDumpParserState.CONTRIBUTOR:
        return cursor._replace(state=WikiDumpParserState.REVISION), None
    elif event.name == "revision" and state != WikiDumpParserState.PAGE:
        return _end_revision(cursor, strict=strict), None
    elif event.name == "page":
        if state != WikiDumpParserState.PAGE:
            cursor = _drop_revision(
                cursor, "Page ended inside of a revision", strict=strict
            )
        return _end_page(cursor, strict=strict)
    return cursor, None


def _capture(
    cursor: WikiDumpParserCursor, field: str, text: str
) -> WikiDumpParserCursor:
    in_page = cursor.state == WikiDumpParserState.PAGE
    if getattr(cursor.page if in_page else cursor.revision, field) is not None:
        return cursor  # First occurrence wins.

    value: object
    if field in _INT_FIELDS:
        try:
            value = int(text)
        except ValueError:
            return cursor
    elif field == "timestamp":
        try:
            value = datetime.strptime(text.strip(), TIMESTAMP_FORMAT).astimezone(
                timezone.utc
            )
        except ValueError:
            return cursor
    else:
        value = text

    if in_page:
        return cursor._replace(page=cursor.page._replace(**{field: value}))
    return cursor._replace(revision=cursor.revision._replace(**{field: value}))


def _end_revision(
    cursor: WikiDumpParserCursor, *, strict: bool
) -> WikiDumpParserCursor:
    fields = cursor.revision
    if (
        fields.revision_id is None
        or fields.timestamp is None
        or fields.content_model is None
        or fields.content_format is None
        or fields.text is None
    ):
        return _drop_revision(
            cursor, "Revision is missing mandatory fields", strict=strict
        )

    revision = WikiDumpRevision(
        revision_id=fields.revision_id,
        parent_revision_id=fields.parent_revision_id,
        contributor_id=fields.contributor_id,
        contributor_username=fields.contributor_username,
        contributor_ip=fields.contributor_ip,
        timestamp=fields.timestamp,
        content_model=fields.content_model,
        content_format=fields.content_format,
        text=fields.text,
    )
    return cursor._replace(
        state=WikiDumpParserState.PAGE,
        page=cursor.page._replace(revisions=(revision, cursor.page.revisions)),
        revision=_EMPTY_REVISION_FIELDS,
    )


def _drop_revision(
    cursor: WikiDumpParserCursor, reason: str, *, strict: bool
) -> WikiDumpParserCursor:
    if strict:
        raise WikiDumpMalformedRecordError(
            reason,
            page_id=cursor.page.page_id,
            revision_id=cursor.revision.revision_id,
        )
    return cursor._replace(
        state=WikiDumpParserState.PAGE,
        revision=_EMPTY_REVISION_FIELDS,
        num_dropped_revisions=cursor.num_dropped_revisions + 1,
    )


def _end_page(
    cursor: WikiDumpParserCursor, *, strict: bool
) -> Tuple[WikiDumpParserCursor, Optional[WikiDumpPage]]:
    fields = cursor.page
    cursor = cursor._replace(page=_EMPTY_PAGE_FIELDS)

    if fields.page_id is None or fields.namespace is None or fields.title is None:
        if strict:
            raise WikiDumpMalformedRecordError(
                "Page is missing mandatory fields", page_id=fields.page_id
            )
        return cursor._replace(num_dropped_pages=cursor.num_dropped_pages + 1), None

    revisions: List[WikiDumpRevision] = []
    chain = fields.revisions
    while chain is not None:
        revision, chain = chain
        revisions.append(revision)
    revisions.reverse()

    # In rare cases, revisions are not stored in the order of their timestamps. The
    # sort is stable and computes each key only once.
    revisions.sort(key=lambda revision: revision.timestamp)

    return cursor, WikiDumpPage(
        page_id=fields.page_id,
        namespace=fields.namespace,
        title=fields.title,
        revisions=tuple(revisions),
    )


class WikiDumpPageParser:
    def __init__(
        self, *, strict: bool = False, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        self.strict: Final = strict
        self.chunk_size: Final = chunk_size

    def parse(
        self, fd: IO[bytes], *, name: Optional[str] = None
    ) -> Iterator[WikiDumpPage]:
        return self.iter_pages(
            iter_tag_events(fd, chunk_size=self.chunk_size, name=name), name=name
        )

    def iter_pages(
        self, events: Iterable[WikiDumpTagEvent], *, name: Optional[str] = None
    ) -> Iterator[WikiDumpPage]:
        name = name or "stream"
        _LOGGER.debug(f"Parsing pages from {name}.")

        num_pages = 0
        num_revisions = 0
        cursor = WikiDumpParserCursor()
        for event in events:
            cursor, page = step(cursor, event, strict=self.strict)
            if page is not None:
                yield page
                num_pages += 1
                num_revisions += len(page.revisions)
            if cursor.state == WikiDumpParserState.DONE:
                break
        else:
            # Events ran out without an explicit end of stream.
            cursor, _ = step(
                cursor, WikiDumpTagEvent.end_of_stream(), strict=self.strict
            )

        _LOGGER.debug(
            f"Done parsing pages from {name}. Found {num_pages:,} pages and "
            f"{num_revisions:,} revisions, dropped {cursor.num_dropped_pages:,} pages "
            f"and {cursor.num_dropped_revisions:,} revisions."
        )
