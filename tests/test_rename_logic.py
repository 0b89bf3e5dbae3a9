from datetime import date

import pytest

from dbrename.domain.models import FILESTREAM, MEMORY_OPTIMIZED, OTHER, ROWS
from dbrename.domain.rename_logic import (
    DisambiguationCounter,
    NameRegistry,
    current_date_token,
    file_type_tag,
    format_renames,
    join_physical_name,
    prune_identity,
    resolve_unique_name,
    split_physical_name,
    strip_fragments,
    substitute,
)


def test_substitute_replaces_each_placeholder() -> None:
    values = {
        "<DBN>": "HR",
        "<DATE>": "20170807",
        "<FGN>": "Archive",
        "<FT>": "ROWS",
        "<LGN>": "HR_data",
        "<FNN>": "HR",
    }
    for token, value in values.items():
        assert substitute(f"x_{token}_y", values) == f"x_{value}_y"


def test_substitute_database_and_date() -> None:
    token = current_date_token(date(2017, 8, 7))
    assert substitute("<DBN>_<DATE>", {"<DBN>": "HR", "<DATE>": token}) == "HR_20170807"


def test_substitute_is_case_sensitive_and_keeps_unknown_tokens() -> None:
    assert substitute("<dbn>_<FGN>", {"<DBN>": "HR"}) == "<dbn>_<FGN>"


def test_strip_fragments_removes_old_names_and_ignores_missing() -> None:
    assert strip_fragments("HR_Archive", ["HR", None, ""]) == "_Archive"
    assert strip_fragments("Archive", []) == "Archive"


@pytest.mark.parametrize(
    ("group_type", "is_log", "expected"),
    [
        (ROWS, False, "ROWS"),
        (MEMORY_OPTIMIZED, False, "MMO"),
        (FILESTREAM, False, "FS"),
        (OTHER, False, "STD"),
        (None, True, "LOG"),
    ],
)
def test_file_type_tag(group_type: str | None, is_log: bool, expected: str) -> None:
    assert file_type_tag(group_type, is_log) == expected


def test_registry_is_case_insensitive() -> None:
    registry = NameRegistry(["Sales"])
    assert "SALES" in registry
    registry.replace("sales", "Orders")
    assert "Sales" not in registry
    assert "orders" in registry
    assert len(registry) == 1


def test_resolve_unique_name_keeps_free_candidate() -> None:
    counter = DisambiguationCounter()
    registry = NameRegistry(["A", "B"])
    assert resolve_unique_name("Data", "A", registry, counter) == "Data"
    assert counter.value == 0


def test_resolve_unique_name_counts_up_across_entities() -> None:
    counter = DisambiguationCounter()
    registry = NameRegistry(["Data", "Data001"])
    first = resolve_unique_name("Data", "B", registry, counter)
    registry.add(first)
    second = resolve_unique_name("Data", "C", registry, counter)

    assert first == "Data002"
    assert second == "Data003"


def test_resolve_unique_name_never_collides_with_itself() -> None:
    registry = NameRegistry(["Data", "Other"])
    assert resolve_unique_name("Data", "Data", registry, DisambiguationCounter()) == "Data"
    assert resolve_unique_name("DATA", "Data", registry, DisambiguationCounter()) == "DATA"


def test_resolve_unique_name_places_counter_before_suffix() -> None:
    registry = NameRegistry(["D:\\Data\\New.mdf"])
    resolved = resolve_unique_name(
        "D:\\Data\\New", "D:\\Data\\Old.mdf", registry, DisambiguationCounter(), suffix=".mdf"
    )
    assert resolved == "D:\\Data\\New001.mdf"


def test_split_and_join_windows_paths() -> None:
    assert split_physical_name("D:\\Data\\HR.mdf") == ("D:\\Data", "HR", ".mdf")
    assert split_physical_name("L:\\Logs\\HR.log.ldf") == ("L:\\Logs", "HR.log", ".ldf")
    assert split_physical_name("F:\\Stream\\HR_fs") == ("F:\\Stream", "HR_fs", "")
    assert join_physical_name("D:\\Data", "HR2", ".mdf") == "D:\\Data\\HR2.mdf"


def test_format_renames_prunes_identity_and_keeps_order() -> None:
    mapping = {"b": "b2", "a": "a", "c": "c2"}
    assert prune_identity(mapping) == {"b": "b2", "c": "c2"}
    assert format_renames(mapping) == "b --> b2\nc --> c2"
    assert format_renames({}) == ""
