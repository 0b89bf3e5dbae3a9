from __future__ import annotations

import ntpath
from datetime import date
from typing import Iterable

from .models import FILESTREAM, MEMORY_OPTIMIZED, ROWS

DBN = "<DBN>"
DATE = "<DATE>"
FGN = "<FGN>"
FT = "<FT>"
LGN = "<LGN>"
FNN = "<FNN>"

PRIMARY_FILEGROUP = "PRIMARY"

_FILE_TYPE_TAGS = {
    ROWS: "ROWS",
    MEMORY_OPTIMIZED: "MMO",
    FILESTREAM: "FS",
}


def current_date_token(today: date) -> str:
    """
    Format a date the way the <DATE> placeholder expects it.

    Example:
        >>> current_date_token(date(2017, 8, 7))
        '20170807'
    """
    return today.strftime("%Y%m%d")


def substitute(template: str, values: dict[str, str]) -> str:
    """
    Replace placeholder tokens with their values.

    Tokens are literal and case-sensitive. Only the tokens given in `values`
    are replaced, anything else in the template is kept as-is.

    Example:
        >>> substitute("<DBN>_<DATE>", {"<DBN>": "HR", "<DATE>": "20170807"})
        'HR_20170807'
    """
    result = template
    for token, value in values.items():
        result = result.replace(token, value)
    return result


def strip_fragments(value: str, fragments: Iterable[str | None]) -> str:
    """
    Remove old ancestor names from a current name before it is templated again.

    Plain substring removal: a fragment that happens to appear elsewhere in
    the value is removed as well.

    Example:
        >>> strip_fragments("HR_Data", ["HR"])
        '_Data'
    """
    result = value
    for fragment in fragments:
        if fragment:
            result = result.replace(fragment, "")
    return result


def file_type_tag(group_type: str | None, is_log: bool = False) -> str:
    if is_log:
        return "LOG"
    return _FILE_TYPE_TAGS.get(group_type or "", "STD")


class NameRegistry:
    """Names currently known in one scope, compared case-insensitively."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: dict[str, str] = {}
        for name in names:
            self.add(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._names

    def __len__(self) -> int:
        return len(self._names)

    def add(self, name: str) -> None:
        self._names[name.casefold()] = name

    def discard(self, name: str) -> None:
        self._names.pop(name.casefold(), None)

    def replace(self, old: str, new: str) -> None:
        self.discard(old)
        self.add(new)


class DisambiguationCounter:
    """Suffix counter owned by one level of one database pass."""

    def __init__(self) -> None:
        self.value = 0

    def next(self) -> int:
        self.value += 1
        return self.value


def resolve_unique_name(
    candidate: str,
    current: str,
    registry: NameRegistry,
    counter: DisambiguationCounter,
    suffix: str = "",
) -> str:
    """
    Return `candidate + suffix`, or the first counter-suffixed variant that is
    free in `registry`.

    The entity's own current name never counts as a collision.

    Example:
        registry = NameRegistry(["HR_Data", "Sales"])
        resolve_unique_name("HR_Data", "Sales", registry, DisambiguationCounter())
        # 'HR_Data001'
    """
    resolved = f"{candidate}{suffix}"
    while resolved in registry and resolved.casefold() != current.casefold():
        resolved = f"{candidate}{counter.next():03d}{suffix}"
    return resolved


def split_physical_name(path: str) -> tuple[str, str, str]:
    """
    Split a Windows path into (directory, stem, extension).

    Example:
        >>> split_physical_name("D:\\\\Data\\\\HR.mdf")
        ('D:\\\\Data', 'HR', '.mdf')
    """
    directory, leaf = ntpath.split(path)
    stem, extension = ntpath.splitext(leaf)
    return directory, stem, extension


def join_physical_name(directory: str, stem: str, extension: str = "") -> str:
    return ntpath.join(directory, f"{stem}{extension}")


def prune_identity(mapping: dict[str, str]) -> dict[str, str]:
    return {old: new for old, new in mapping.items() if old != new}


def format_renames(mapping: dict[str, str]) -> str:
    """
    Render a rename map as one `old --> new` line per entry.

    Example:
        >>> format_renames({"HR": "HR2"})
        'HR --> HR2'
    """
    return "\n".join(f"{old} --> {new}" for old, new in prune_identity(mapping).items())
