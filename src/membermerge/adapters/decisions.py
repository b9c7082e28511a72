"""Pydantic models describing an operator's merge decisions file.

Example payload::

    {
      "member_a_id": "4f0c...",
      "member_b_id": "9a7e...",
      "survivor": "A",
      "take_all_from": "A",
      "field_choices": {"email": "B", "loyalty_points": "B"},
      "selection_a": ["p1", "p2"],
      "selection_b": ["p3"]
    }

``take_all_from`` sets every field first; ``field_choices`` then overrides
individual fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Self, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from membermerge.domain.dedup import FieldChoices, MergeRequest
from membermerge.domain.model import MergeField, Side


def _upper_side(value: object) -> object:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class DecisionsBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class MergeDecisions(DecisionsBaseModel):
    member_a_id: str = Field(min_length=1)
    member_b_id: str = Field(min_length=1)
    survivor: Side
    operator_id: str | None = None
    take_all_from: Side = Side.A
    field_choices: dict[MergeField, Side] = Field(default_factory=dict[MergeField, Side])
    selection_a: list[str] = Field(default_factory=list[str])
    selection_b: list[str] = Field(default_factory=list[str])

    _normalize_survivor = field_validator("survivor", "take_all_from", mode="before")(
        _upper_side
    )

    @field_validator("field_choices", mode="before")
    @classmethod
    def _normalize_choices(cls, value: object) -> object:
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[object, object], value)
            return {key: _upper_side(side) for key, side in mapping_value.items()}
        return value

    @model_validator(mode="after")
    def _distinct_members(self) -> Self:
        if self.member_a_id == self.member_b_id:
            raise ValueError("member_a_id and member_b_id must differ")
        return self

    def to_request(self, *, operator_id: str | None = None) -> MergeRequest:
        """Build the engine request; an explicit ``operator_id`` wins over the file's."""

        operator = operator_id or self.operator_id
        if not operator:
            raise ValueError("No operator id given (use --operator or MEMBERMERGE_OPERATOR_ID)")
        choices = FieldChoices.all(self.take_all_from)
        if self.field_choices:
            choices = FieldChoices(
                **{
                    merge_field.value: self.field_choices.get(
                        merge_field, choices.source_for(merge_field)
                    )
                    for merge_field in MergeField
                }
            )
        return MergeRequest(
            member_a_id=self.member_a_id,
            member_b_id=self.member_b_id,
            survivor=self.survivor,
            operator_id=operator,
            field_choices=choices,
            selection_a=frozenset(self.selection_a),
            selection_b=frozenset(self.selection_b),
        )


def load_decisions(path: Path | str) -> MergeDecisions:
    """Read and validate a decisions file. Raises ``pydantic.ValidationError``."""

    return MergeDecisions.model_validate_json(Path(path).read_text(encoding="utf-8"))
