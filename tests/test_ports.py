from unittest.mock import Mock

from dbrename.adapters.file_mover import SubprocessFileMover
from dbrename.domain.models import InstanceInfo
from dbrename.ports import AuditLogPort, CatalogPort, FileMoverPort


class DummyCatalog:
    def get_instance_info(self) -> InstanceInfo:
        return InstanceInfo("SQL01", "MSSQLSERVER", "SQL01")

    def list_databases(self):
        return []

    def get_database(self, name):
        raise KeyError(name)

    def list_instance_physical_files(self):
        return []

    def rename_database(self, name, new_name):
        pass

    def rename_filegroup(self, database, name, new_name):
        pass

    def rename_logical_file(self, database, name, new_name):
        pass

    def set_physical_file_name(self, database, logical_name, path):
        pass

    def set_offline(self, database, force=False):
        pass

    def set_online(self, database):
        pass


def test_catalog_port_runtime_checkable() -> None:
    assert isinstance(DummyCatalog(), CatalogPort)
    assert not isinstance(object(), CatalogPort)


def test_file_mover_adapter_satisfies_port() -> None:
    assert isinstance(SubprocessFileMover(local_names={"sqlhost"}), FileMoverPort)


def test_audit_log_port_accepts_mocks() -> None:
    assert isinstance(Mock(spec=["save_rename_result", "list_rename_results"]), AuditLogPort)
