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

import gzip
from pathlib import Path
from typing import Sequence

import pytest

from dump_xml_helpers import ShardFactory, dump_xml


@pytest.fixture
def make_shard(tmp_path: Path) -> ShardFactory:
    def _make_shard(file_name: str, pages: Sequence[str]) -> Path:
        path = tmp_path / file_name
        with gzip.open(path, "wb") as fd:
            fd.write(dump_xml(pages).encode("UTF-8"))
        return path

    return _make_shard
