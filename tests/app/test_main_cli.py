from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from membermerge import main as main_module
from membermerge.config.merge import OPERATOR_ENV_VAR
from membermerge.domain.dedup import (
    AlreadyAppliedOutcome,
    AppliedOutcome,
    DuplicateGroup,
    FailedOutcome,
    MemberNotFoundError,
)
from membermerge.domain.model import MemberSummary
from tests.helpers.members import make_member, make_purchase, make_record

if TYPE_CHECKING:
    from pathlib import Path

    from membermerge.adapters.decisions import MergeDecisions


@pytest.fixture(autouse=True)
def _no_adapter_shutdown(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_shutdown() -> None:
        return None

    monkeypatch.setattr(main_module, "shutdown", fake_shutdown)


def _write_decisions(tmp_path: Path, **overrides: object) -> Path:
    payload: dict[str, object] = {
        "member_a_id": "A",
        "member_b_id": "B",
        "survivor": "A",
        "selection_a": ["p1"],
        "selection_b": ["p2"],
    }
    payload.update(overrides)
    path = tmp_path / "decisions.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_groups_command_prints_groups(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}
    group = DuplicateGroup(
        identity_key="alice@example.com",
        members=(
            MemberSummary.of(make_member("A", first_name="Alice")),
            MemberSummary.of(make_member("B", first_name="Alicia", loyalty_points=12)),
        ),
    )

    async def fake_groups(**kwargs: object) -> list[DuplicateGroup]:
        captured.update(kwargs)
        return [group]

    monkeypatch.setattr(main_module, "list_duplicate_groups", fake_groups)

    main_module.main(["groups", "--search", "alice"])

    out = capsys.readouterr().out
    assert captured["search"] == "alice"
    assert "alice@example.com (2 accounts)" in out
    assert "B  Alicia Martin  created=2024-01-01  source=platform  points=12" in out


def test_groups_command_without_results(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    async def fake_groups(**_: object) -> list[DuplicateGroup]:
        return []

    monkeypatch.setattr(main_module, "list_duplicate_groups", fake_groups)

    main_module.main(["groups"])

    assert "No duplicate groups found" in capsys.readouterr().out


def test_show_command_prints_purchases(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    record = make_record(make_member("A"), purchases=[make_purchase("A", "p1", amount="9.99")])

    async def fake_show(member_id: str) -> object:
        assert member_id == "A"
        return record

    monkeypatch.setattr(main_module, "show_member", fake_show)

    main_module.main(["show", "A"])

    out = capsys.readouterr().out
    assert "A  Alice Martin <alice@example.com>" in out
    assert "p1  2024-01-01  9.99" in out


def test_show_command_unknown_member_exits_with_2(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_show(member_id: str) -> object:
        raise MemberNotFoundError(member_id)

    monkeypatch.setattr(main_module, "show_member", fake_show)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["show", "ghost"])

    assert excinfo.value.code == 2


def test_merge_command_passes_operator(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    async def fake_merge(decisions: MergeDecisions, **kwargs: object) -> AppliedOutcome:
        captured["decisions"] = decisions
        captured.update(kwargs)
        return AppliedOutcome(survivor_id="A", loser_id="B")

    monkeypatch.setattr(main_module, "merge_members", fake_merge)

    main_module.main(["merge", str(_write_decisions(tmp_path)), "--operator", "op-1"])

    assert captured["operator_id"] == "op-1"
    assert "Merged B into A" in capsys.readouterr().out


def test_merge_command_already_applied_succeeds(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    async def fake_merge(_decisions: MergeDecisions, **_: object) -> AlreadyAppliedOutcome:
        return AlreadyAppliedOutcome(survivor_id="A", loser_id="B", merged_into="A")

    monkeypatch.setattr(main_module, "merge_members", fake_merge)

    main_module.main(["merge", str(_write_decisions(tmp_path)), "--operator", "op-1"])


def test_merge_command_failure_exits_with_1(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    async def fake_merge(_decisions: MergeDecisions, **_: object) -> FailedOutcome:
        return FailedOutcome(
            survivor_id="A", loser_id="B", reason="timeout", step="purchases", retryable=True
        )

    monkeypatch.setattr(main_module, "merge_members", fake_merge)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["merge", str(_write_decisions(tmp_path)), "--operator", "op-1"])

    assert excinfo.value.code == 1


def test_merge_command_invalid_decisions_exits_with_2(tmp_path: Path) -> None:
    path = _write_decisions(tmp_path, member_b_id="A")

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["merge", str(path)])

    assert excinfo.value.code == 2


def test_merge_command_missing_file_exits_with_2(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["merge", str(tmp_path / "absent.json")])

    assert excinfo.value.code == 2


def test_merge_command_without_operator_exits_with_2(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv(OPERATOR_ENV_VAR, raising=False)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["merge", str(_write_decisions(tmp_path))])

    assert excinfo.value.code == 2


def test_missing_command_exits_with_2() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main([])

    assert excinfo.value.code == 2
