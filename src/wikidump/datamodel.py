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

from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel as PydanticModel
from pydantic import ConfigDict, Field


class WikiDumpRevision(PydanticModel):
    model_config = ConfigDict(frozen=True)

    revision_id: int
    parent_revision_id: Optional[int] = None
    # Either contributor_id and contributor_username are given (logged in user) or
    # contributor_ip is (anonymous edit). Deleted contributors have neither.
    contributor_id: Optional[int] = None
    contributor_username: Optional[str] = None
    contributor_ip: Optional[str] = None
    timestamp: datetime
    # Usually "wikitext" and "text/x-wiki", but not always.
    content_model: str
    content_format: str
    text: str = Field(repr=False)

    @property
    def is_anonymous(self) -> bool:
        return self.contributor_ip is not None and self.contributor_id is None


class WikiDumpPage(PydanticModel):
    model_config = ConfigDict(frozen=True)

    page_id: int
    # On Wikipedia, 0 is for articles, 1 for talk pages, 2 for user pages, etc.
    namespace: int
    title: str
    # Sorted ascending by timestamp.
    revisions: Tuple[WikiDumpRevision, ...] = Field(default=(), repr=False)

    @property
    def num_revisions(self) -> int:
        return len(self.revisions)

    def __repr_args__(self):  # type: ignore
        yield from super().__repr_args__()
        yield "num_revisions", self.num_revisions
