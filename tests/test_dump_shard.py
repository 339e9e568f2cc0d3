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
from contextlib import contextmanager
from pathlib import Path
from shutil import which
from subprocess import Popen
from typing import Any, Iterator, List

import pytest

from dump_xml_helpers import (
    ShardFactory,
    dump_xml,
    page_xml,
    requires_gzip,
    revision_xml,
    simple_page_xml,
)
from wikidump import (
    WikiDumpDecompressionError,
    WikiDumpMalformedRecordError,
    WikiDumpSettings,
    WikiDumpShard,
)
from wikidump._utils import compressed_archive
from wikidump._utils.misc import external_process

requires_sh = pytest.mark.skipif(which("sh") is None, reason="sh binary not available")


@pytest.fixture
def started_processes(monkeypatch: pytest.MonkeyPatch) -> List["Popen[Any]"]:
    processes: List["Popen[Any]"] = []

    @contextmanager
    def recording_external_process(
        *args: Any, **kwargs: Any
    ) -> Iterator["Popen[Any]"]:
        with external_process(*args, **kwargs) as process:
            processes.append(process)
            yield process

    monkeypatch.setattr(
        compressed_archive, "external_process", recording_external_process
    )
    return processes


@pytest.mark.parametrize(
    "file_name",
    [
        "foo.txt",
        "bar.xml-p1.7z",
        "enwiki.xml-p1p10",
        "enwiki.xml-pAp10.7z",
        "enwiki.xml-p1p10.7z.tmp",
        "enwiki-20210601.json-p1p10.7z",
        "enwiki.xml-p10p5.7z",
        "enwiki.xml-p1p10.rar",
    ],
)
def test_not_a_shard(file_name: str) -> None:
    assert WikiDumpShard.from_path(Path(file_name)) is None


def test_shard_from_path() -> None:
    shard = WikiDumpShard.from_path(
        Path("enwiki-20210601-pages-meta-history1.xml-p1p41242.7z")
    )

    assert shard is not None
    assert shard.min_page_id == 1
    assert shard.max_page_id == 41242
    assert shard.page_ids == range(1, 41243)
    assert "p1-p41242" in repr(shard)


def test_single_page_shard() -> None:
    shard = WikiDumpShard.from_path(Path("enwiki.xml-p7p7.bz2"))

    assert shard is not None
    assert shard.contains_id(7)
    assert not shard.contains_id(6)
    assert not shard.contains_id(8)


def test_contains_id() -> None:
    shard = WikiDumpShard.from_path(Path("enwiki.xml-p100p200.gz"))

    assert shard is not None
    assert shard.contains_id(100)
    assert shard.contains_id(150)
    assert shard.contains_id(200)
    assert not shard.contains_id(99)
    assert not shard.contains_id(201)


def test_extension_needs_configured_decompressor() -> None:
    settings = WikiDumpSettings(decompressors={"lz4": ("lz4", "-dc")})

    assert WikiDumpShard.from_path(Path("enwiki.xml-p1p10.lz4"), settings)
    assert WikiDumpShard.from_path(Path("enwiki.xml-p1p10.7z"), settings) is None


@requires_gzip
def test_records(make_shard: ShardFactory) -> None:
    path = make_shard(
        "enwiki.xml-p1p10.gz", [simple_page_xml(1), page_xml(3), simple_page_xml(8)]
    )
    shard = WikiDumpShard.from_path(path)
    assert shard is not None

    pages = list(shard.records())

    assert [page.page_id for page in pages] == [1, 3, 8]
    assert [len(page.revisions) for page in pages] == [1, 0, 1]
    assert pages[2].revisions[0].revision_id == 80


@requires_gzip
def test_records_with_progress_bar(make_shard: ShardFactory) -> None:
    path = make_shard("enwiki.xml-p1p10.gz", [simple_page_xml(1), simple_page_xml(2)])
    shard = WikiDumpShard.from_path(path)
    assert shard is not None

    assert [page.page_id for page in shard.records(display_progress_bar=True)] == [
        1,
        2,
    ]


@requires_gzip
def test_records_strict_override(make_shard: ShardFactory) -> None:
    path = make_shard(
        "enwiki.xml-p1p10.gz",
        [page_xml(1, [revision_xml(10, "2020-01-01T00:00:00Z", text=None)])],
    )
    shard = WikiDumpShard.from_path(path)
    assert shard is not None

    (page,) = shard.records()
    assert page.revisions == ()
    with pytest.raises(WikiDumpMalformedRecordError):
        list(shard.records(strict=True))


@requires_gzip
def test_records_can_be_closed_early(
    make_shard: ShardFactory, started_processes: List["Popen[Any]"]
) -> None:
    path = make_shard(
        "enwiki.xml-p1p100.gz", [simple_page_xml(i) for i in range(1, 101)]
    )
    shard = WikiDumpShard.from_path(path)
    assert shard is not None

    pages = shard.records()
    assert next(pages).page_id == 1
    pages.close()  # type: ignore

    (process,) = started_processes
    assert process.returncode is not None
    assert next(iter(shard)).page_id == 1


@requires_gzip
def test_corrupt_archive(tmp_path: Path) -> None:
    path = tmp_path / "enwiki.xml-p1p10.gz"
    path.write_bytes(b"This is not a gzip file.")
    shard = WikiDumpShard.from_path(path)
    assert shard is not None

    with pytest.raises(WikiDumpDecompressionError) as exc_info:
        list(shard.records())
    assert exc_info.value.return_code != 0


@requires_gzip
def test_truncated_archive(tmp_path: Path) -> None:
    data = gzip.compress(
        dump_xml([simple_page_xml(i) for i in range(1, 50)]).encode("UTF-8")
    )
    path = tmp_path / "enwiki.xml-p1p50.gz"
    path.write_bytes(data[: len(data) // 2])
    shard = WikiDumpShard.from_path(path)
    assert shard is not None

    with pytest.raises(WikiDumpDecompressionError):
        list(shard.records())


def test_missing_file(tmp_path: Path) -> None:
    shard = WikiDumpShard.from_path(tmp_path / "enwiki.xml-p1p10.gz")
    assert shard is not None

    with pytest.raises(FileNotFoundError):
        shard.records()


@pytest.mark.skipif(which("cat") is None, reason="cat binary not available")
def test_custom_decompressor(tmp_path: Path) -> None:
    path = tmp_path / "enwiki.xml-p1p10.xml"
    path.write_text(dump_xml([simple_page_xml(4)]), encoding="UTF-8")
    settings = WikiDumpSettings(decompressors={"xml": ("cat",)})

    shard = WikiDumpShard.from_path(path, settings)
    assert shard is not None

    assert [page.page_id for page in shard.records()] == [4]


@requires_sh
def test_closing_records_terminates_decompressor(
    tmp_path: Path, started_processes: List["Popen[Any]"]
) -> None:
    path = tmp_path / "enwiki.xml-p1p10.xml"
    path.write_text(
        dump_xml([simple_page_xml(i) for i in range(1, 51)]), encoding="UTF-8"
    )
    # Keeps running after writing the dump, until it is terminated.
    settings = WikiDumpSettings(
        chunk_size=1024,
        decompressors={"xml": ("sh", "-c", 'cat "$0"; exec sleep 60')},
    )
    shard = WikiDumpShard.from_path(path, settings)
    assert shard is not None

    pages = shard.records()
    assert next(pages).page_id == 1
    (process,) = started_processes
    assert process.poll() is None

    pages.close()  # type: ignore

    assert process.returncode is not None
    assert process.returncode != 0


@requires_sh
def test_decompressor_with_much_output_on_stderr(tmp_path: Path) -> None:
    path = tmp_path / "enwiki.xml-p1p10.xml"
    path.write_text(dump_xml([simple_page_xml(4)]), encoding="UTF-8")
    # Writes far more than a pipe buffer to stderr before any output on stdout.
    noisy = 'head -c 200000 /dev/zero | tr "\\0" x >&2; cat "$0"'
    settings = WikiDumpSettings(decompressors={"xml": ("sh", "-c", noisy)})

    shard = WikiDumpShard.from_path(path, settings)
    assert shard is not None

    assert [page.page_id for page in shard.records()] == [4]


@requires_sh
def test_decompressor_failure_with_much_output_on_stderr(tmp_path: Path) -> None:
    path = tmp_path / "enwiki.xml-p1p10.xml"
    path.write_text(dump_xml([simple_page_xml(4)]), encoding="UTF-8")
    noisy = 'head -c 200000 /dev/zero | tr "\\0" x >&2; cat "$0"; exit 3'
    settings = WikiDumpSettings(decompressors={"xml": ("sh", "-c", noisy)})

    shard = WikiDumpShard.from_path(path, settings)
    assert shard is not None

    with pytest.raises(WikiDumpDecompressionError) as exc_info:
        list(shard.records())
    assert exc_info.value.return_code == 3
    assert exc_info.value.stderr.startswith("xxx")
    assert len(exc_info.value.stderr) == 200000


@pytest.mark.parametrize(
    "file_name", ["enwiki.xml-p١p١٠.7z", "enwiki.xml-p１p９.7z"]
)
def test_page_ids_must_be_ascii_digits(file_name: str) -> None:
    assert WikiDumpShard.from_path(Path(file_name)) is None
