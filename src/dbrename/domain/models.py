from dataclasses import dataclass, field

ROWS = "ROWS"
MEMORY_OPTIMIZED = "MEMORY_OPTIMIZED"
FILESTREAM = "FILESTREAM"
OTHER = "OTHER"

FULL = "FULL"
PARTIAL = "PARTIAL"

TARGET_LOCAL = "local"
TARGET_REMOTE_SESSION = "remote-session"
TARGET_ADMIN_SHARE = "admin-share"

SYSTEM_DATABASES = frozenset({"master", "model", "msdb", "tempdb", "distribution"})


@dataclass
class LogicalFile:
    file_id: int
    name: str
    physical_name: str
    is_log: bool = False


@dataclass
class FileGroup:
    name: str
    group_type: str = ROWS
    files: list[LogicalFile] = field(default_factory=list)


@dataclass
class Database:
    name: str
    state: str = "ONLINE"
    is_accessible: bool = True
    is_snapshot: bool = False
    is_mirrored: bool = False
    is_ag_member: bool = False
    filegroups: list[FileGroup] = field(default_factory=list)
    log_files: list[LogicalFile] = field(default_factory=list)

    @property
    def is_system(self) -> bool:
        return self.name.lower() in SYSTEM_DATABASES

    def data_files(self) -> list[LogicalFile]:
        return [logical for group in self.filegroups for logical in group.files]


@dataclass
class InstanceInfo:
    computer_name: str
    instance_name: str
    sql_instance: str


@dataclass
class RenameTemplates:
    database_name: str = ""
    filegroup_name: str = ""
    logical_name: str = ""
    file_name: str = ""

    def is_empty(self) -> bool:
        return not (self.database_name or self.filegroup_name or self.logical_name or self.file_name)


@dataclass
class RenameRequest:
    templates: RenameTemplates
    databases: list[str] = field(default_factory=list)
    exclude_databases: list[str] = field(default_factory=list)
    all_databases: bool = False
    replace_before: bool = False
    preview: bool = False
    move: bool = False
    set_offline: bool = False
    force: bool = False


@dataclass
class RenameMaps:
    database: dict[str, str] = field(default_factory=dict)
    filegroup: dict[str, str] = field(default_factory=dict)
    logical_file: dict[str, str] = field(default_factory=dict)
    physical_file: dict[str, str] = field(default_factory=dict)


@dataclass
class PendingRename:
    source: str
    destination: str
    target: str
    computer_name: str
    unc_source: str | None = None
    unc_destination: str | None = None


@dataclass
class RenameResult:
    computer_name: str
    instance_name: str
    sql_instance: str
    database: str
    database_renames: str
    filegroup_renames: str
    logical_name_renames: str
    file_name_renames: str
    pending_renames: list[PendingRename]
    status: str
    notes: list[str] = field(default_factory=list)
    maps: RenameMaps = field(default_factory=RenameMaps)
