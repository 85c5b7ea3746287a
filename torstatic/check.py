# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Verify the environment is able to build the static tor dependencies.
"""
from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from .common import (
    FOLDERS,
    LINUX,
    WIN32,
    CommandFailedError,
    Config,
    MissingFolderError,
    PackageVersionError,
    WrongBinaryError,
    WrongShellError,
    query,
)

log: logging.Logger = logging.getLogger(__name__)

Query = Callable[[Sequence[str]], str]

PKG_CACHE = "/var/cache/pacman/pkg"


def remediation(packages: Mapping[str, str]) -> str:
    """
    The pacman commands that put every pinned package back at its version.
    """
    return "\n".join(
        f"    pacman -U {PKG_CACHE}/{name}-{version}-any.pkg.tar.xz"
        for name, version in packages.items()
    )


def check_folders(config: Config) -> None:
    """
    Make sure all the source folders are there.

    :raises MissingFolderError: Naming the first folder that is absent
    """
    for folder in FOLDERS:
        if not config.folder(folder).is_dir():
            raise MissingFolderError(folder)


def check_mingw(config: Config, query: Query = query) -> None:
    """
    Confirm we are in a MinGW64 shell with the pinned packages installed.

    :raises WrongShellError: When ``uname`` is missing or not MinGW64
    :raises PackageVersionError: When a package is not at its pinned version
    """
    try:
        uname = query(["uname", "-a"])
    except CommandFailedError as exc:
        raise WrongShellError("This has to be run in a MSYS or MinGW shell") from exc
    if not uname.startswith("MINGW64"):
        raise WrongShellError("This has to be run in a MSYS or MinGW64 shell")
    for name, version in config.packages.items():
        try:
            got = query(["pacman", "-Q", name]).strip()
        except CommandFailedError as exc:
            raise CommandFailedError(
                exc.cmd,
                returncode=exc.returncode,
                message=f"Failed running pacman to check packages: {exc}",
            ) from exc
        if got != f"{name} {version}":
            raise PackageVersionError(name, version, got, remediation(config.packages))
        log.debug("Found %s %s", name, version)


def check_not_mingw(query: Query = query) -> None:
    """
    A MinGW shell has to use the windows interpreter to run the build.

    :raises WrongBinaryError: When ``uname`` reports MinGW
    """
    try:
        uname = query(["uname", "-a"])
    except CommandFailedError as exc:
        raise CommandFailedError(
            exc.cmd, returncode=exc.returncode, message="Failed running uname -a"
        ) from exc
    if uname.startswith("MINGW"):
        raise WrongBinaryError(
            "MinGW should not use the Linux interpreter, but instead a Windows "
            "python.exe to run the build"
        )


def validate_environment(config: Config, query: Query = query) -> None:
    """
    Check the folders and the shell before anything is built.

    :param config: The torstatic settings
    :type config: ``torstatic.common.Config``
    :param query: Runs a diagnostic command and returns its output
    :type query: callable
    """
    check_folders(config)
    if config.platform == WIN32:
        check_mingw(config, query)
    elif config.platform == LINUX:
        check_not_mingw(query)
    log.debug("Environment is valid for %s", config.platform)
