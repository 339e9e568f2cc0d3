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

from bisect import bisect_right
from typing import (
    Generic,
    MutableSequence,
    Sequence,
    Tuple,
    TypeVar,
    Union,
    overload,
)

_T_Value = TypeVar("_T_Value")


class RangeMultiMap(Generic[_T_Value]):
    """Maps ranges of integers to values, allowing ranges to overlap.

    Items are kept ordered by (start, stop) of their range, with items of equal
    ranges in insertion order. Lookups return all values whose range matches, in
    that order.
    """

    def __init__(self) -> None:
        self._keys: MutableSequence[Tuple[int, int]] = []
        self._data: MutableSequence[Tuple[range, _T_Value]] = []

    def __len__(self) -> int:
        return len(self._data)

    def add(self, key: range, value: _T_Value) -> None:
        # O(1) for keys inserted in increasing order, O(n) otherwise.

        if not isinstance(key, range) or key.step != 1:
            raise TypeError("key must be a range with step = 1.")
        if not key:
            raise TypeError("key must not be an empty range.")

        i = bisect_right(self._keys, (key.start, key.stop))
        self._keys.insert(i, (key.start, key.stop))
        self._data.insert(i, (key, value))

    @overload
    def __getitem__(self, key: int) -> Sequence[_T_Value]:
        ...

    @overload
    def __getitem__(self, key: slice) -> Sequence[_T_Value]:
        ...

    @overload
    def __getitem__(self, key: object) -> Sequence[_T_Value]:
        ...

    def __getitem__(self, key: Union[int, slice, object]) -> Sequence[_T_Value]:
        # O(log n) to find the candidates, which are then checked linearly since
        # overlapping ranges do not allow to bound the search by the stop of a range.

        if isinstance(key, bool):
            raise TypeError("key must either be an int or a slice.")
        elif isinstance(key, int):
            start, stop = key, key + 1
        elif isinstance(key, slice):
            if key.step is not None:
                raise TypeError("slice must not have a step.")
            start = key.start if key.start is not None else -(2**63)
            stop = key.stop if key.stop is not None else 2**63
            if start >= stop:
                return []
        else:
            raise TypeError("key must either be an int or a slice.")

        # Candidates are all items with a range starting before stop.
        num_candidates = bisect_right(self._keys, (stop - 1, 2**63))
        return [
            item_value
            for item_key, item_value in self._data[:num_candidates]
            if item_key.stop > start
        ]

    def values(self) -> Sequence[_T_Value]:
        return [item_value for _item_key, item_value in self._data]
