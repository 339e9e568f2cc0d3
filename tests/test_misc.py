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

from shutil import which
from subprocess import DEVNULL, PIPE

import pytest

from wikidump._utils import external_process


@pytest.mark.skipif(which("sleep") is None, reason="sleep binary not available")
def test_process_is_terminated_on_exit() -> None:
    with external_process(
        ["sleep", "60"], stdin=DEVNULL, stdout=DEVNULL, stderr=DEVNULL
    ) as process:
        assert process.poll() is None

    assert process.returncode is not None
    assert process.returncode != 0


@pytest.mark.skipif(which("echo") is None, reason="echo binary not available")
def test_process_output() -> None:
    with external_process(
        ["echo", "hello"], stdin=DEVNULL, stdout=PIPE, stderr=DEVNULL, name="echo"
    ) as process:
        assert process.stdout is not None
        assert process.stdout.read() == "hello\n"

    assert process.returncode == 0
    assert process.stdout.closed


@pytest.mark.skipif(which("sleep") is None, reason="sleep binary not available")
def test_process_is_terminated_on_exception() -> None:
    with pytest.raises(RuntimeError):
        with external_process(
            ["sleep", "60"], stdin=PIPE, stdout=DEVNULL, stderr=DEVNULL
        ) as process:
            raise RuntimeError()

    assert process.returncode is not None
