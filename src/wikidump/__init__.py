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

from wikidump._utils import WikiDumpDecompressionError
from wikidump.datamodel import WikiDumpPage, WikiDumpRevision
from wikidump.dump_corpus import WikiDumpCorpus
from wikidump.dump_events import (
    WikiDumpDecodeError,
    WikiDumpTagEvent,
    WikiDumpTagEventKind,
    iter_tag_events,
)
from wikidump.dump_page_parser import (
    WikiDumpMalformedRecordError,
    WikiDumpPageParser,
    WikiDumpParserCursor,
    WikiDumpParserState,
    step,
)
from wikidump.dump_shard import WikiDumpShard
from wikidump.settings_ import WikiDumpSettings, configure_logging

__all__ = [
    "WikiDumpDecompressionError",
    "WikiDumpPage",
    "WikiDumpRevision",
    "WikiDumpCorpus",
    "WikiDumpDecodeError",
    "WikiDumpTagEvent",
    "WikiDumpTagEventKind",
    "iter_tag_events",
    "WikiDumpMalformedRecordError",
    "WikiDumpPageParser",
    "WikiDumpParserCursor",
    "WikiDumpParserState",
    "step",
    "WikiDumpShard",
    "WikiDumpSettings",
    "configure_logging",
]
