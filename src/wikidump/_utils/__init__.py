#
# Copyright 2021 Lukas Schmelzeisen
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

from wikidump._utils.compressed_archive import (
    CompressedArchive,
    WikiDumpDecompressionError,
)
from wikidump._utils.misc import external_process
from wikidump._utils.parallelize import (
    ParallelizeFailure,
    ParallelizeIterFunc,
    parallelize_iter,
)
from wikidump._utils.range_map import RangeMultiMap

__all__ = [
    "CompressedArchive",
    "WikiDumpDecompressionError",
    "external_process",
    "ParallelizeFailure",
    "ParallelizeIterFunc",
    "parallelize_iter",
    "RangeMultiMap",
]
