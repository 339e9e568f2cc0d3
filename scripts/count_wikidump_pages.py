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

from logging import getLogger
from pathlib import Path

from wikidump import WikiDumpCorpus, WikiDumpSettings, configure_logging

_LOGGER = getLogger(__name__)


def _main() -> None:
    data_dir = Path("data")
    dump_dir = data_dir / "dumpfiles"
    data_dir.mkdir(exist_ok=True, parents=True)

    configure_logging(file=True, file_path=data_dir / "wikidump.log")

    settings_path = data_dir / "wikidump.json"
    settings = (
        WikiDumpSettings.load(settings_path)
        if settings_path.exists()
        else WikiDumpSettings(display_progress_bar=True)
    )

    corpus = WikiDumpCorpus.open(dump_dir, settings)
    for shard in corpus.shards():
        _LOGGER.info(f"Shard: {shard!r}")

    num_pages = 0
    num_revisions = 0
    for page in corpus.records_parallel():
        num_pages += 1
        num_revisions += page.num_revisions
    _LOGGER.info(
        f"Found {num_pages:,} pages with {num_revisions:,} revisions in "
        f"{len(corpus):,} shards."
    )


if __name__ == "__main__":
    try:
        _main()
    except Exception:
        # Make exceptions show up in log.
        _LOGGER.exception("Exception occurred.")
        raise
