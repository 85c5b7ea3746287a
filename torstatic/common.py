# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Common classes and values used around torstatic.
"""
from __future__ import annotations

import logging
import ntpath
import os
import pathlib
import subprocess
import sys
from typing import Mapping, Optional, Sequence, Union

# torstatic package version
__version__ = "0.1.0"

log = logging.getLogger(__name__)

LINUX = "linux"
WIN32 = "win32"
DARWIN = "darwin"

ROOT_ENV = "TORSTATIC_ROOT"

# Order matters, later folders link against the dist output of earlier ones.
FOLDERS = ("openssl", "libevent", "zlib", "xz", "tor")

# MinGW headers and runtime newer than these break the static tor link.
PINNED_PACKAGES = {
    "mingw-w64-x86_64-crt-git": "5.0.0.4745.d2384c2-1",
    "mingw-w64-x86_64-headers-git": "5.0.0.4747.0f8f626-1",
    "mingw-w64-x86_64-winpthreads-git": "5.0.0.4741.2c8939a-1",
    "mingw-w64-x86_64-libwinpthread-git": "5.0.0.4741.2c8939a-1",
}

PathLike = Union[str, os.PathLike[str]]


class TorStaticException(Exception):
    """
    Base class for exeptions generated from torstatic.
    """


class UsageError(TorStaticException):
    """
    The command line could not be understood.
    """


class MissingFolderError(TorStaticException):
    """
    One of the required source folders does not exist.
    """

    def __init__(self, folder: str) -> None:
        super().__init__(f"{folder} is not a dir")
        self.folder = folder


class WrongShellError(TorStaticException):
    """
    Windows builds must run from a MinGW64 shell.
    """


class WrongBinaryError(TorStaticException):
    """
    A MinGW shell is running the Linux build.
    """


class PackageVersionError(TorStaticException):
    """
    An installed MinGW package is not at the pinned version.
    """

    def __init__(self, package: str, expected: str, got: str, remediation: str) -> None:
        super().__init__(
            f"Expected '{package} {expected}' got '{got}'. Must downgrade some "
            f"packages for MinGW to work. Use:\n{remediation}"
        )
        self.package = package
        self.expected = expected
        self.got = got
        self.remediation = remediation


class UnknownFolderError(TorStaticException):
    """
    The requested folder has no recipe.
    """

    def __init__(self, folder: str) -> None:
        super().__init__(f"Unrecognized folder: {folder}")
        self.folder = folder


class CommandFailedError(TorStaticException):
    """
    An external command could not be launched or exited non zero.
    """

    def __init__(
        self,
        cmd: Sequence[str],
        folder: str = "",
        returncode: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            if returncode is None:
                message = "Unable to run '{}'".format(" ".join(cmd))
            else:
                message = "Command '{}' failed with exit code {}".format(
                    " ".join(cmd), returncode
                )
        super().__init__(message)
        self.cmd = list(cmd)
        self.folder = folder
        self.returncode = returncode


def posix_path(path: PathLike, plat: Optional[str] = None) -> str:
    """
    Return the path as the MSYS shell sees it.

    On windows ``C:\\src\\tor`` becomes ``/C/src/tor``, a share becomes
    ``//server/share/...``. Other platforms get the path back unchanged.

    :param path: An absolute path
    :type path: str
    :param plat: The platform to convert for, defaults to ``sys.platform``
    :type plat: str

    :return: The converted path
    :rtype: str
    """
    if plat is None:
        plat = sys.platform
    path = os.fspath(path)
    if plat != WIN32:
        return path
    drive, rest = ntpath.splitdrive(path)
    if not drive:
        return path.replace("\\", "/")
    rest = rest.replace("\\", "/").lstrip("/")
    if drive[:2] in ("\\\\", "//"):
        # UNC share, \\server\share becomes //server/share
        return "/".join(filter(None, [drive.replace("\\", "/"), rest]))
    return "/" + drive.rstrip(":") + "/" + rest


class Config:
    """
    Settings shared by every torstatic component for a single invocation.

    :param root: The directory holding the source folders, defaults to the
        ``TORSTATIC_ROOT`` environment variable or the current directory
    :type root: str
    :param verbose: Pass subprocess output through to our own streams
    :type verbose: bool
    :param plat: The target platform, defaults to ``sys.platform``
    :type plat: str
    :param packages: Pinned MinGW packages, defaults to ``PINNED_PACKAGES``
    :type packages: dict
    """

    def __init__(
        self,
        root: Optional[PathLike] = None,
        verbose: bool = False,
        plat: Optional[str] = None,
        packages: Optional[Mapping[str, str]] = None,
    ) -> None:
        if root is None:
            root = os.environ.get(ROOT_ENV, ".")
        self.root: pathlib.Path = pathlib.Path(os.path.abspath(root))
        self.verbose = verbose
        self.platform: str = plat or sys.platform
        if packages is None:
            packages = PINNED_PACKAGES
        self.packages: dict[str, str] = dict(packages)

    @property
    def is_windows(self) -> bool:
        return self.platform == WIN32

    @property
    def posix_root(self) -> str:
        """
        The root directory in the form passed to configure scripts.
        """
        return posix_path(self.root, self.platform)

    def folder(self, name: str) -> pathlib.Path:
        """
        Absolute path to a source folder.
        """
        return self.root / name

    def prefix(self, name: str) -> str:
        """
        The install prefix of a source folder as seen by the shell.
        """
        return f"{self.posix_root}/{name}/dist"

    def __repr__(self) -> str:
        return (
            f"Config(root={str(self.root)!r}, verbose={self.verbose!r}, "
            f"plat={self.platform!r})"
        )


def runcmd(
    cmd: Sequence[str],
    folder: str = "",
    env: Optional[Mapping[str, str]] = None,
    verbose: bool = False,
    root: Optional[PathLike] = None,
) -> subprocess.CompletedProcess[bytes]:
    """
    Run a command.

    Run the provided command in ``folder`` raising an exception when the
    command can not be started or finishes with a non zero exit code.

    :param cmd: The program followed by its arguments
    :type cmd: list
    :param folder: The folder to run in, relative to ``root``
    :type folder: str
    :param env: Environment variables to set on top of ``os.environ``
    :type env: dict
    :param verbose: Connect the process output to our own stdout and stderr
    :type verbose: bool
    :param root: The directory ``folder`` is relative to, defaults to the
        current directory
    :type root: str

    :return: The process result
    :rtype: ``subprocess.CompletedProcess``

    :raises CommandFailedError: If the command fails
    """
    if not cmd:
        raise TorStaticException("No command provided to runcmd")
    log.info("Running in folder %s: %s %s", folder, cmd[0], " ".join(cmd[1:]))
    base = pathlib.Path(root) if root is not None else pathlib.Path.cwd()
    cwd = base / folder if folder else base
    kwargs: dict[str, object] = {}
    if env:
        merged = dict(os.environ)
        merged.update(env)
        kwargs["env"] = merged
    if not verbose:
        kwargs["stdout"] = subprocess.DEVNULL
        kwargs["stderr"] = subprocess.DEVNULL
    try:
        p = subprocess.run(  # type: ignore[call-overload]
            list(cmd), cwd=str(cwd), check=False, **kwargs
        )
    except OSError as exc:
        raise CommandFailedError(
            cmd, folder, message=f"Unable to run '{cmd[0]}': {exc}"
        ) from exc
    if p.returncode != 0:
        raise CommandFailedError(cmd, folder, p.returncode)
    return p


def query(cmd: Sequence[str]) -> str:
    """
    Run a diagnostic command and return what it printed.

    Stdout and stderr are combined.

    :raises CommandFailedError: If the command can not be run or exits non zero
    """
    log.debug("Running command: %s", " ".join(cmd))
    try:
        p = subprocess.run(
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            universal_newlines=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise CommandFailedError(
            cmd, message=f"Unable to run '{cmd[0]}': {exc}"
        ) from exc
    if p.returncode != 0:
        raise CommandFailedError(cmd, returncode=p.returncode)
    return p.stdout
