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

from contextlib import contextmanager
from logging import getLogger
from subprocess import PIPE, Popen, TimeoutExpired
from typing import IO, Any, Iterator, Optional, Sequence, Union

_LOGGER = getLogger(__name__)


@contextmanager
def external_process(
    args: Sequence[str],
    *,
    stdin: Optional[int],
    stdout: Optional[int],
    stderr: Union[int, IO[Any], None],
    name: Optional[str] = None,
    encoding: Optional[str] = "UTF-8",
    terminate_timeout: Optional[float] = 1,
) -> Iterator["Popen[Any]"]:
    # With encoding=None the process pipes are binary.
    if name is None:
        name = args[0]
        _LOGGER.debug(f"Starting external process '{' '.join(args)}'")
    else:
        _LOGGER.debug(f"Starting external process {name}: '{' '.join(args)}'")

    process = Popen(args, stdin=stdin, stdout=stdout, stderr=stderr, encoding=encoding)

    try:
        yield process

    finally:
        if stdin == PIPE:
            assert process.stdin is not None
            process.stdin.close()

        if process.poll() is None:
            process.terminate()
        try:
            process.wait(timeout=terminate_timeout)
        except TimeoutExpired:
            _LOGGER.exception(f"External process {name} did not terminate, killing...")
            process.kill()
            process.wait()

        for pipe in (process.stdout, process.stderr):
            if pipe is not None:
                pipe.close()
        _LOGGER.debug(
            f"Ended external process {name} with return code {process.returncode}"
        )
