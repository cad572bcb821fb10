from pathlib import Path

import pytest

from golfweights.ingest import (
    build_results_by_year,
    build_results_from_rows,
    dedupe_rounds,
    expected_file_names,
    filter_rows,
    find_file_by_keywords,
    load_field,
    load_results_csv,
    load_rows,
    resolve_tournament_file,
)


def _row(**kwargs):
    row = {"dg_id": "p1", "event_id": "100", "year": "2026", "round_num": "1", "fin_text": "1"}
    row.update(kwargs)
    return row


def test_load_rows_normalizes_headers(tmp_path: Path):
    path = tmp_path / "rounds.csv"
    path.write_text("\ufeffDG ID,Player Name,SG Putt\n 7 , Someone ,0.5\n", encoding="utf-8")

    [row] = load_rows(path)

    assert row == {"dg_id": "7", "player_name": "Someone", "sg_putt": "0.5"}


def test_load_field_dedupes_players(tmp_path: Path):
    path = tmp_path / "field.csv"
    path.write_text("dg_id,player_name\n1,A\n2,B\n1,A again\n,Nobody\n", encoding="utf-8")

    players = load_field(path)

    assert [player.player_id for player in players] == ["1", "2"]
    assert players[0].name == "A"


def test_filter_rows_by_event_season_and_exclusion():
    rows = [
        _row(),
        _row(event_id="200"),
        _row(year="2025"),
        _row(dg_id="p2", year="2025"),
    ]

    assert len(filter_rows(rows, event_ids={"100"})) == 3
    assert len(filter_rows(rows, season="2025", player_ids={"p2"})) == 1
    assert len(filter_rows(rows, exclude_event=("100", "2026"))) == 3


def test_dedupe_rounds_keeps_last_row():
    rows = [_row(sg_putt="1.0"), _row(sg_putt="2.0"), _row(round_num="2")]

    deduped = dedupe_rounds(rows)

    assert len(deduped) == 2
    assert deduped[0]["sg_putt"] == "2.0"


def test_results_from_rows_take_best_finish_and_rank_non_finishers_last():
    rows = [
        _row(dg_id="p1", fin_text="T3"),
        _row(dg_id="p1", fin_text="5"),
        _row(dg_id="p2", fin_text="CUT"),
        _row(dg_id="p3", fin_text="1"),
    ]

    results = {result.player_id: result.finish_position for result in build_results_from_rows(rows)}

    assert results == {"p1": 3, "p2": 4, "p3": 1}
    assert build_results_from_rows([_row(fin_text="WD")]) == []


def test_results_by_year_for_one_event():
    rows = [_row(), _row(year="2025", fin_text="2"), _row(event_id="200"), _row(year="")]

    results = build_results_by_year(rows, "100")

    assert list(results) == ["2025", "2026"]
    assert results["2025"][0].finish_position == 2


def test_load_results_csv_accepts_finish_aliases(tmp_path: Path):
    path = tmp_path / "results.csv"
    path.write_text("dg_id,player_name,Finish Position\n1,A,T2\n2,B,MC\n3,C,1\n", encoding="utf-8")

    results = {result.player_id: result.finish_position for result in load_results_csv(path)}

    assert results == {"1": 2, "2": 3, "3": 1}


def test_expected_file_names():
    assert expected_file_names("Historical Data", "Open", "2026") == [
        "Open (2026) - Historical Data.csv",
        "Open - Historical Data.csv",
    ]
    assert expected_file_names("Historical Data", None, "2026") == ["Historical Data.csv"]


@pytest.mark.parametrize(
    ("tournament", "season", "expected"),
    [
        ("Open", "2026", "Open (2026) - Historical Data.csv"),
        ("Open", None, "Open - Historical Data.csv"),
        ("Other", None, "Another Event - Historical Data.csv"),
    ],
)
def test_resolve_tournament_file(tmp_path: Path, tournament, season, expected):
    for name in (
        "Open (2026) - Historical Data.csv",
        "Open - Historical Data.csv",
        "Another Event - Historical Data.csv",
        "Open - Tournament Field.csv",
    ):
        (tmp_path / name).write_text("dg_id\n", encoding="utf-8")

    resolved = resolve_tournament_file("Historical Data", [tmp_path], tournament=tournament, season=season)

    assert resolved.name == expected
    assert resolve_tournament_file("Approach Skill", [tmp_path]) is None


def test_find_file_by_keywords(tmp_path: Path):
    (tmp_path / "03_POWER_summary.csv").write_text("", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")

    assert find_file_by_keywords([tmp_path], ["power", "summary"]).name == "03_POWER_summary.csv"
    assert find_file_by_keywords([tmp_path, tmp_path / "missing"], ["notes"]) is None
