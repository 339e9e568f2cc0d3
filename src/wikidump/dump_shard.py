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

import re
from logging import getLogger
from pathlib import Path
from typing import Iterator, Optional

from tqdm import tqdm  # type: ignore
from typing_extensions import Final

from wikidump._utils import CompressedArchive
from wikidump.datamodel import WikiDumpPage
from wikidump.dump_page_parser import WikiDumpPageParser
from wikidump.settings_ import WikiDumpSettings

_LOGGER = getLogger(__name__)


class WikiDumpShard:
    """One archive of a sharded dump, holding the pages with the IDs declared in its
    file name, e.g. "enwiki-20210601-pages-meta-history1.xml-p1p41242.7z".

    The declared range of page IDs is what the file name claims, not what is
    guaranteed to be in the archive: IDs in the range may be missing.
    """

    FILE_NAME_PATTERN: Final = re.compile(
        r"^(?P<prefix>[^.]+)\.xml-p(?P<min_page_id>[0-9]+)p(?P<max_page_id>[0-9]+)"
        r"\.(?P<extension>[^.]+)$"
    )

    def __init__(
        self,
        path: Path,
        page_ids: range,
        archive: CompressedArchive,
        settings: WikiDumpSettings,
    ) -> None:
        self.path: Final = path
        self.page_ids: Final = page_ids
        self._archive = archive
        self._settings = settings

    @classmethod
    def from_path(
        cls, path: Path, settings: Optional[WikiDumpSettings] = None
    ) -> Optional[WikiDumpShard]:
        settings = settings or WikiDumpSettings()

        match = cls.FILE_NAME_PATTERN.match(path.name)
        if not match:
            _LOGGER.debug(f"File '{path.name}' is not a dump shard (based on name).")
            return None

        min_page_id = int(match["min_page_id"])
        max_page_id = int(match["max_page_id"])
        if min_page_id > max_page_id:
            _LOGGER.debug(
                f"File '{path.name}' declares an empty range of page IDs, skipping."
            )
            return None

        command = settings.decompressors.get(match["extension"])
        if command is None:
            _LOGGER.debug(
                f"File '{path.name}' has no decompressor configured for extension "
                f"'.{match['extension']}', skipping."
            )
            return None

        return WikiDumpShard(
            path,
            range(min_page_id, max_page_id + 1),
            CompressedArchive(path, command),
            settings,
        )

    @property
    def min_page_id(self) -> int:
        return self.page_ids.start

    @property
    def max_page_id(self) -> int:
        return self.page_ids.stop - 1

    def contains_id(self, page_id: int) -> bool:
        return page_id in self.page_ids

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.path.name!r}, "
            f"p{self.min_page_id}-p{self.max_page_id})"
        )

    def __iter__(self) -> Iterator[WikiDumpPage]:
        return self.records()

    def records(
        self,
        *,
        strict: Optional[bool] = None,
        display_progress_bar: Optional[bool] = None,
    ) -> Iterator[WikiDumpPage]:
        if not self.path.exists():
            raise FileNotFoundError(self.path)
        return self._iter_records(
            strict=self._settings.strict if strict is None else strict,
            display_progress_bar=(
                self._settings.display_progress_bar
                if display_progress_bar is None
                else display_progress_bar
            ),
        )

    def _iter_records(
        self, *, strict: bool, display_progress_bar: bool
    ) -> Iterator[WikiDumpPage]:
        _LOGGER.debug(f"Parsing pages from dump shard {self.path.name}.")

        parser = WikiDumpPageParser(strict=strict, chunk_size=self._settings.chunk_size)
        progress_bar: Optional[tqdm] = (
            tqdm(desc=self.path.name, total=len(self.page_ids), dynamic_ncols=True)
            if display_progress_bar
            else None
        )

        num_pages = 0
        try:
            with self._archive.read() as fd:
                for page in parser.parse(fd, name=self.path.name):
                    yield page
                    num_pages += 1
                    if progress_bar is not None:
                        progress_bar.update(1)
        finally:
            if progress_bar is not None:
                progress_bar.total = progress_bar.n
                progress_bar.close()

        _LOGGER.debug(
            f"Done parsing pages from dump shard {self.path.name}. "
            f"Found {num_pages:,} pages."
        )
