from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from membermerge.adapters.decisions import MergeDecisions, load_decisions
from membermerge.domain.model import MergeField, Side

if TYPE_CHECKING:
    from pathlib import Path


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "member_a_id": "A",
        "member_b_id": "B",
        "survivor": "a",
        "selection_a": ["p1"],
        "selection_b": ["p2"],
    }
    payload.update(overrides)
    return payload


def test_decisions_normalise_sides() -> None:
    decisions = MergeDecisions.model_validate(
        _payload(take_all_from=" b ", field_choices={"email": "a"})
    )

    assert decisions.survivor is Side.A
    assert decisions.take_all_from is Side.B
    assert decisions.field_choices == {MergeField.EMAIL: Side.A}


def test_to_request_applies_overrides_on_top_of_default_side() -> None:
    decisions = MergeDecisions.model_validate(
        _payload(take_all_from="B", field_choices={"email": "A", "tags": "A"})
    )

    request = decisions.to_request(operator_id="op-1")

    assert request.operator_id == "op-1"
    assert request.survivor is Side.A
    assert request.field_choices.email is Side.A
    assert request.field_choices.tags is Side.A
    assert request.field_choices.loyalty_points is Side.B
    assert request.selection_a == frozenset({"p1"})
    assert request.selection_b == frozenset({"p2"})


def test_to_request_operator_precedence() -> None:
    decisions = MergeDecisions.model_validate(_payload(operator_id="from-file"))

    assert decisions.to_request().operator_id == "from-file"
    assert decisions.to_request(operator_id="from-flag").operator_id == "from-flag"


def test_to_request_without_operator_fails() -> None:
    decisions = MergeDecisions.model_validate(_payload())

    with pytest.raises(ValueError, match="operator"):
        decisions.to_request()


@pytest.mark.parametrize(
    "overrides",
    [
        {"member_b_id": "A"},
        {"survivor": "C"},
        {"field_choices": {"nickname": "A"}},
        {"unexpected": True},
        {"member_a_id": ""},
    ],
)
def test_invalid_decisions_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        MergeDecisions.model_validate(_payload(**overrides))


def test_load_decisions_reads_json_file(tmp_path: Path) -> None:
    path = tmp_path / "decisions.json"
    path.write_text(json.dumps(_payload(survivor="B")), encoding="utf-8")

    decisions = load_decisions(path)

    assert decisions.survivor is Side.B
    assert decisions.member_a_id == "A"


def test_load_decisions_rejects_malformed_json(tmp_path: Path) -> None:
    path = tmp_path / "decisions.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_decisions(path)
