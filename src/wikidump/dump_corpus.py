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

from contextlib import closing
from logging import getLogger
from pathlib import Path
from typing import AbstractSet, Iterable, Iterator, Optional, Sequence

from typing_extensions import Final

from wikidump._utils import RangeMultiMap, parallelize_iter
from wikidump.datamodel import WikiDumpPage
from wikidump.dump_shard import WikiDumpShard
from wikidump.settings_ import WikiDumpSettings

_LOGGER = getLogger(__name__)


class WikiDumpCorpus:
    """All shards of a dump found in one directory.

    Shards are ordered by their declared range of page IDs (then by file name).
    This order is used for sequential iteration and decides which shard wins if
    the ranges of multiple shards overlap.
    """

    def __init__(
        self,
        root: Path,
        shards: Iterable[WikiDumpShard],
        settings: Optional[WikiDumpSettings] = None,
    ) -> None:
        self.root: Final = root
        self.settings: Final = settings or WikiDumpSettings()
        self._shards_by_page_ids = RangeMultiMap[WikiDumpShard]()
        for shard in sorted(shards, key=lambda shard: shard.path.name):
            self._shards_by_page_ids.add(shard.page_ids, shard)

    @classmethod
    def open(
        cls, root: Path, settings: Optional[WikiDumpSettings] = None
    ) -> WikiDumpCorpus:
        settings = settings or WikiDumpSettings()
        _LOGGER.debug(f"Loading dump shards from directory {root}.")

        shards = []
        for path in root.iterdir():
            if not path.is_file():
                continue
            shard = WikiDumpShard.from_path(path, settings)
            if shard is not None:
                shards.append(shard)

        _LOGGER.debug(
            f"Done loading dump shards from directory {root}. "
            f"Found {len(shards):,} shards."
        )
        return WikiDumpCorpus(root, shards, settings)

    def __len__(self) -> int:
        return len(self._shards_by_page_ids)

    def __iter__(self) -> Iterator[WikiDumpPage]:
        return self.records()

    def shards(self) -> Sequence[WikiDumpShard]:
        return tuple(self._shards_by_page_ids.values())

    def shards_for_id(self, page_id: int) -> Sequence[WikiDumpShard]:
        return self._shards_by_page_ids[page_id]

    def records(self) -> Iterator[WikiDumpPage]:
        for shard in self.shards():
            yield from shard.records()

    def records_parallel(
        self, *, max_workers: Optional[int] = None
    ) -> Iterator[WikiDumpPage]:
        shards = self.shards()
        return parallelize_iter(
            WikiDumpShard.records,
            shards,
            max_workers=max_workers or self.settings.max_workers,
            queue_size=self.settings.queue_size,
            progress_bar_desc=(
                "Dump shards" if self.settings.display_progress_bar else None
            ),
        )

    def records_by_ids(self, page_ids: AbstractSet[int]) -> Iterator[WikiDumpPage]:
        shards = {
            shard for page_id in page_ids for shard in self.shards_for_id(page_id)
        }
        for shard in self.shards():
            if shard not in shards:
                continue
            for page in shard.records():
                if page.page_id in page_ids:
                    yield page

    def record_by_id(self, page_id: int) -> Optional[WikiDumpPage]:
        for shard in self.shards_for_id(page_id):
            # Closing stops the decompression as soon as the page is found.
            with closing(shard.records()) as pages:
                for page in pages:
                    if page.page_id == page_id:
                        return page
        return None

    def records_in_range(
        self,
        min_page_id: Optional[int] = None,
        max_page_id: Optional[int] = None,
    ) -> Iterator[WikiDumpPage]:
        # Both bounds are inclusive.
        stop = max_page_id + 1 if max_page_id is not None else None
        for shard in self._shards_by_page_ids[min_page_id:stop]:
            for page in shard.records():
                if (min_page_id is None or page.page_id >= min_page_id) and (
                    max_page_id is None or page.page_id <= max_page_id
                ):
                    yield page
