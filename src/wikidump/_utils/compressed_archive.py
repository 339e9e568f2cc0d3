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

from contextlib import contextmanager
from logging import getLogger
from pathlib import Path
from subprocess import DEVNULL, PIPE
from tempfile import TemporaryFile
from typing import IO, Iterator, Sequence

from typing_extensions import Final

from wikidump._utils.misc import external_process

_LOGGER = getLogger(__name__)


class WikiDumpDecompressionError(OSError):
    def __init__(self, command: Sequence[str], return_code: int, stderr: str) -> None:
        super().__init__(
            f"Decompression command '{' '.join(command)}' exited with return code "
            f"{return_code}: {stderr.strip() or '(no output on stderr)'}"
        )
        self.command = tuple(command)
        self.return_code = return_code
        self.stderr = stderr


class CompressedArchive:
    def __init__(self, path: Path, command: Sequence[str]) -> None:
        self.path: Final = path
        self.command: Final = tuple(command) + (str(path),)

    @contextmanager
    def read(self) -> Iterator[IO[bytes]]:
        _LOGGER.debug(f"Reading from compressed archive {self.path}.")
        # The process is terminated when leaving the context, also if the consumer
        # stops early or raises. Only a stream that was consumed up to EOF has its
        # return code checked, as terminating a running process yields -15.
        # Output on stderr must never block the process, however much there is.
        with TemporaryFile() as stderr_file, external_process(
            self.command,
            stdin=DEVNULL,
            stdout=PIPE,
            stderr=stderr_file,
            name=self.command[0],
            encoding=None,
        ) as decompress_process:
            assert decompress_process.stdout is not None
            yield decompress_process.stdout

            return_code = decompress_process.wait()
            stderr_file.seek(0)
            stderr = stderr_file.read().decode("UTF-8", "replace")
            if return_code != 0:
                _LOGGER.error(
                    f"Decompressing {self.path.name} failed with return code "
                    f"{return_code}."
                )
                raise WikiDumpDecompressionError(self.command, return_code, stderr)
