"""Pipeline - the typed data envelope passed between workflow steps."""

from __future__ import annotations

from typing import Any, Iterator

from ..core.exceptions import InvalidDataKindError, InvalidPipelineKindError
from .types import DataKind, PipelineItem, PipelineKind


def _coerce_kind(kind: PipelineKind | str) -> PipelineKind:
    if isinstance(kind, PipelineKind):
        return kind
    if not PipelineKind.is_valid(kind):
        raise InvalidPipelineKindError(kind)
    return PipelineKind(kind)


def _coerce_data_kind(data_kind: DataKind | str) -> DataKind:
    if isinstance(data_kind, DataKind):
        return data_kind
    if not DataKind.is_valid(data_kind):
        raise InvalidDataKindError(data_kind)
    return DataKind(data_kind)


class Pipeline:
    """
    Ordered, typed bag of data items flowing between nodes.

    Items keep insertion order and may repeat a data kind. A node never
    patches the pipeline it received; it returns a new one.
    """

    def __init__(self, kind: PipelineKind | str) -> None:
        self._kind = _coerce_kind(kind)
        self._items: list[PipelineItem] = []

    @property
    def kind(self) -> PipelineKind:
        return self._kind

    @property
    def items(self) -> list[PipelineItem]:
        return list(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PipelineItem]:
        return iter(list(self._items))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pipeline):
            return NotImplemented
        return self._kind == other._kind and self._items == other._items

    def __repr__(self) -> str:
        kinds = ", ".join(item.data_kind.value for item in self._items)
        return f"Pipeline(kind={self._kind.value!r}, items=[{kinds}])"

    def add(self, data_kind: DataKind | str, value: Any) -> Pipeline:
        """Append an item; raises InvalidDataKindError and leaves items unchanged."""
        self._items.append(PipelineItem(_coerce_data_kind(data_kind), value))
        return self

    def set_kind(self, kind: PipelineKind | str) -> Pipeline:
        """Change the pipeline kind; raises InvalidPipelineKindError on bad input."""
        self._kind = _coerce_kind(kind)
        return self

    def get_by_kind(self, data_kind: DataKind | str) -> Any:
        """Return the value of the first item of the given kind, or None."""
        wanted = _coerce_data_kind(data_kind)
        for item in self._items:
            if item.data_kind == wanted:
                return item.value
        return None

    def get_all_by_kind(self, data_kind: DataKind | str) -> list[Any]:
        """Return the values of every item of the given kind, in order."""
        wanted = _coerce_data_kind(data_kind)
        return [item.value for item in self._items if item.data_kind == wanted]

    def first(self) -> PipelineItem | None:
        return self._items[0] if self._items else None

    def clear(self) -> Pipeline:
        self._items = []
        return self

    def copy(self) -> Pipeline:
        clone = Pipeline(self._kind)
        clone._items = list(self._items)
        return clone

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self._kind.value,
            "items": [
                {"data_kind": item.data_kind.value, "value": item.value}
                for item in self._items
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pipeline:
        pipeline = cls(data.get("kind", PipelineKind.UNKNOWN.value))
        for item in data.get("items") or []:
            pipeline.add(item["data_kind"], item.get("value"))
        return pipeline

    @staticmethod
    def of(kind: PipelineKind | str, data_kind: DataKind | str, value: Any) -> Pipeline:
        """Create a pipeline holding a single item."""
        return Pipeline(kind).add(data_kind, value)

    @staticmethod
    def convert(
        pipeline: Pipeline,
        kind: PipelineKind | str,
        data_kind: DataKind | str,
    ) -> Pipeline:
        """
        Rewrap the first item of a pipeline under a new pipeline and data kind.

        Used when data crosses a type boundary. An empty source yields an
        empty pipeline of the new kind.
        """
        if not isinstance(pipeline, Pipeline):
            raise TypeError(
                f"Pipeline.convert expects a Pipeline, got {type(pipeline).__name__}"
            )
        target_kind = _coerce_kind(kind)
        target_data_kind = _coerce_data_kind(data_kind)

        converted = Pipeline(target_kind)
        first = pipeline.first()
        if first is not None:
            converted.add(target_data_kind, first.value)
        return converted

    @staticmethod
    def from_raw(value: Any) -> Pipeline:
        """
        Build the initial pipeline of a run from raw caller input.

        - Pipeline: returned as is
        - str: prompt pipeline with one text item
        - list of {role, content} messages: chat pipeline, one text item per message
        - None: empty prompt pipeline
        - anything else: custom pipeline with one item of kind any
        """
        if isinstance(value, Pipeline):
            return value
        if value is None:
            return Pipeline(PipelineKind.PROMPT)
        if isinstance(value, str):
            return Pipeline.of(PipelineKind.PROMPT, DataKind.TEXT, value)
        if (
            isinstance(value, list)
            and value
            and all(isinstance(m, dict) and "role" in m for m in value)
        ):
            chat = Pipeline(PipelineKind.CHAT)
            for message in value:
                chat.add(DataKind.TEXT, message.get("content", ""))
            return chat
        return Pipeline.of(PipelineKind.CUSTOM, DataKind.ANY, value)
