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

from logging import DEBUG, INFO, FileHandler, Formatter
from logging import root as root_logger
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

from pydantic import BaseModel as PydanticModel
from pydantic import ConfigDict, Field, field_validator
from tqdm.contrib.logging import _TqdmLoggingHandler  # type: ignore

from wikidump.dump_events import DEFAULT_CHUNK_SIZE

DEFAULT_DECOMPRESSORS: Mapping[str, Tuple[str, ...]] = {
    "7z": ("7z", "x", "-so"),
    "bz2": ("bzip2", "-dc"),
    "gz": ("gzip", "-dc"),
    "xz": ("xz", "-dc"),
    "zst": ("zstd", "-dc"),
}


class WikiDumpSettings(PydanticModel):
    model_config = ConfigDict(frozen=True)

    # Raise on incomplete pages and revisions instead of dropping them.
    strict: bool = False
    # None means the number of CPUs (never more than there are shards).
    max_workers: Optional[int] = Field(default=None, gt=0)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    queue_size: int = Field(default=256, gt=0)
    display_progress_bar: bool = False
    # Archive file extension -> command writing the decompressed archive to stdout.
    # The path of the archive is appended to the command.
    decompressors: Mapping[str, Tuple[str, ...]] = Field(
        default_factory=lambda: dict(DEFAULT_DECOMPRESSORS)
    )

    @field_validator("decompressors")
    @classmethod
    def _check_decompressors(
        cls, value: Mapping[str, Tuple[str, ...]]
    ) -> Mapping[str, Tuple[str, ...]]:
        for extension, command in value.items():
            if not command:
                raise ValueError(f"Empty decompression command for '.{extension}'.")
        return value

    @classmethod
    def load(cls, path: Path) -> WikiDumpSettings:
        with path.open("r", encoding="UTF-8") as fd:
            return cls.model_validate_json(fd.read())


def configure_logging(
    *,
    console: Union[bool, int] = True,
    console_fmt: str = "{asctime} {levelname:.1} {message}",
    file: Union[bool, int] = False,
    file_path: Optional[Path] = None,
    file_fmt: str = "{asctime} {levelname} [{name}:{funcName}@{threadName}] {message}",
) -> None:
    overall_level = root_logger.level

    if file is not False:
        if not file_path:
            raise ValueError("file_path is required when logging to a file.")
        level = DEBUG if file is True else file
        overall_level = min(overall_level, level)
        file_handler = FileHandler(file_path, encoding="UTF-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(Formatter(file_fmt, style="{"))
        root_logger.addHandler(file_handler)

    if console is not False:
        level = INFO if console is True else console
        overall_level = min(overall_level, level)
        console_handler = _TqdmLoggingHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(Formatter(console_fmt, style="{"))
        root_logger.addHandler(console_handler)

    root_logger.setLevel(overall_level)
