from __future__ import annotations

import logging
import ntpath
import os
import socket
import subprocess
from pathlib import Path

from dbrename.domain.errors import FileMoveError
from dbrename.domain.models import (
    TARGET_ADMIN_SHARE,
    TARGET_LOCAL,
    TARGET_REMOTE_SESSION,
    PendingRename,
)
from dbrename.ports.file_mover_port import FileMoverPort

logger = logging.getLogger(__name__)

_LOCAL_ALIASES = {"", ".", "localhost", "127.0.0.1", "::1", "(local)"}

_RENAME_SCRIPT = (
    "$ErrorActionPreference = 'Stop'; "
    "$session = @{ ComputerName = $env:DBRENAME_HOST }; "
    "if ($env:DBRENAME_USER) { "
    "$secure = ConvertTo-SecureString $env:DBRENAME_PASSWORD -AsPlainText -Force; "
    "$session.Credential = New-Object System.Management.Automation.PSCredential($env:DBRENAME_USER, $secure) }; "
    "Invoke-Command @session -ScriptBlock { param($source, $destination) "
    "Rename-Item -LiteralPath $source -NewName (Split-Path -Leaf $destination) } "
    "-ArgumentList $env:DBRENAME_SOURCE, $env:DBRENAME_DESTINATION"
)

_PROBE_SCRIPT = "$ErrorActionPreference = 'Stop'; Test-WSMan -ComputerName $env:DBRENAME_HOST | Out-Null"


def to_admin_share(computer_name: str, path: str) -> str:
    r"""
    Translate a local Windows path on a host into its administrative share path.

    Example:
        >>> to_admin_share("SQL01", r"D:\Data\HR.mdf")
        '\\\\SQL01\\D$\\Data\\HR.mdf'
    """
    drive, rest = ntpath.splitdrive(path)
    if not drive or not drive.endswith(":"):
        raise FileMoveError(f"Path has no drive letter: {path}")
    return f"\\\\{computer_name}\\{drive[0]}${rest}"


class SubprocessFileMover(FileMoverPort):
    def __init__(
        self,
        powershell: str = "powershell",
        username: str = "",
        password: str = "",
        local_names: set[str] | None = None,
        timeout: int = 120,
    ) -> None:
        self._powershell = powershell
        self._username = username
        self._password = password
        self._timeout = timeout
        if local_names is None:
            local_names = {socket.gethostname(), socket.getfqdn()}
        self._local_names = {name.casefold() for name in local_names | _LOCAL_ALIASES}
        self._remoting: dict[str, bool] = {}

    def plan(self, computer_name: str, source: str, destination: str) -> PendingRename:
        if self.is_local(computer_name):
            return PendingRename(source, destination, TARGET_LOCAL, computer_name)
        if self.remoting_available(computer_name):
            return PendingRename(source, destination, TARGET_REMOTE_SESSION, computer_name)
        pending = PendingRename(source, destination, TARGET_ADMIN_SHARE, computer_name)
        try:
            pending.unc_source = to_admin_share(computer_name, source)
            pending.unc_destination = to_admin_share(computer_name, destination)
        except FileMoveError as exc:
            logger.warning("No administrative share for %s: %s", source, exc)
        return pending

    def move(self, pending: PendingRename) -> None:
        if pending.target == TARGET_LOCAL:
            self._rename_path(pending.source, pending.destination)
        elif pending.target == TARGET_REMOTE_SESSION:
            self._rename_remote(pending)
        elif pending.target == TARGET_ADMIN_SHARE:
            if not pending.unc_source or not pending.unc_destination:
                raise FileMoveError(f"No administrative share path for {pending.source}")
            self._rename_path(pending.unc_source, pending.unc_destination)
        else:
            raise FileMoveError(f"Unknown move target: {pending.target}")

    def is_local(self, computer_name: str) -> bool:
        short_name = computer_name.split(".", 1)[0]
        return (
            computer_name.casefold() in self._local_names
            or short_name.casefold() in self._local_names
        )

    def remoting_available(self, computer_name: str) -> bool:
        key = computer_name.casefold()
        if key not in self._remoting:
            try:
                result = self._run_powershell(_PROBE_SCRIPT, {"DBRENAME_HOST": computer_name})
                self._remoting[key] = result.returncode == 0
            except (OSError, subprocess.TimeoutExpired) as exc:
                logger.warning("PowerShell remoting probe for %s failed: %s", computer_name, exc)
                self._remoting[key] = False
            logger.info(
                "PowerShell remoting to %s is %s",
                computer_name,
                "available" if self._remoting[key] else "unavailable",
            )
        return self._remoting[key]

    def _rename_remote(self, pending: PendingRename) -> None:
        env = {
            "DBRENAME_HOST": pending.computer_name,
            "DBRENAME_SOURCE": pending.source,
            "DBRENAME_DESTINATION": pending.destination,
            "DBRENAME_USER": self._username,
            "DBRENAME_PASSWORD": self._password,
        }
        try:
            result = self._run_powershell(_RENAME_SCRIPT, env)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise FileMoveError(f"Remote rename on {pending.computer_name} failed: {exc}") from exc
        if result.returncode != 0:
            message = (result.stderr or result.stdout).strip()
            raise FileMoveError(f"Remote rename on {pending.computer_name} failed: {message}")

    def _run_powershell(self, script: str, env: dict[str, str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self._powershell, "-NoProfile", "-NonInteractive", "-Command", script],
            capture_output=True,
            text=True,
            timeout=self._timeout,
            env={**os.environ, **env},
        )

    @staticmethod
    def _rename_path(source: str, destination: str) -> None:
        target = Path(destination)
        if target.exists():
            raise FileMoveError(f"Destination already exists: {destination}")
        try:
            Path(source).rename(target)
        except OSError as exc:
            raise FileMoveError(f"Failed to rename {source}: {exc}") from exc
