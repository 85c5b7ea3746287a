# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import shutil

import pytest

from torstatic.check import check_folders, remediation, validate_environment
from torstatic.common import (
    PINNED_PACKAGES,
    CommandFailedError,
    Config,
    MissingFolderError,
    PackageVersionError,
    WrongBinaryError,
    WrongShellError,
)
from tests.helpers import (
    LINUX_UNAME,
    MINGW_UNAME,
    MSYS_UNAME,
    FakeQuery,
    SourceTree,
    mingw_outputs,
)


def test_check_folders(config: Config) -> None:
    check_folders(config)


def test_check_folders_names_first_missing(tree: SourceTree, config: Config) -> None:
    shutil.rmtree(tree.root_dir / "zlib")
    shutil.rmtree(tree.root_dir / "tor")
    with pytest.raises(MissingFolderError) as exc:
        check_folders(config)
    assert exc.value.folder == "zlib"
    assert str(exc.value) == "zlib is not a dir"


def test_check_folders_file_is_not_a_folder(tree: SourceTree, config: Config) -> None:
    shutil.rmtree(tree.root_dir / "xz")
    tree.add_file("xz")
    with pytest.raises(MissingFolderError):
        check_folders(config)


def test_missing_folder_skips_shell_checks(
    tree: SourceTree, win_config: Config, mingw_query: FakeQuery
) -> None:
    shutil.rmtree(tree.root_dir / "openssl")
    with pytest.raises(MissingFolderError):
        validate_environment(win_config, mingw_query)
    assert mingw_query.calls == []


def test_linux_valid(config: Config, linux_query: FakeQuery) -> None:
    validate_environment(config, linux_query)
    assert linux_query.calls == [["uname", "-a"]]


def test_linux_rejects_mingw(config: Config) -> None:
    query = FakeQuery({"uname -a": MINGW_UNAME})
    with pytest.raises(WrongBinaryError):
        validate_environment(config, query)


def test_linux_uname_failure(config: Config) -> None:
    with pytest.raises(CommandFailedError, match="Failed running uname -a"):
        validate_environment(config, FakeQuery({}))


def test_windows_valid(win_config: Config, mingw_query: FakeQuery) -> None:
    validate_environment(win_config, mingw_query)
    assert mingw_query.calls[0] == ["uname", "-a"]
    assert mingw_query.calls[1:] == [["pacman", "-Q", name] for name in PINNED_PACKAGES]


def test_windows_requires_mingw64(win_config: Config) -> None:
    query = FakeQuery(mingw_outputs(PINNED_PACKAGES, uname=MSYS_UNAME))
    with pytest.raises(WrongShellError, match="MinGW64"):
        validate_environment(win_config, query)
    assert query.calls == [["uname", "-a"]]


def test_windows_without_uname(win_config: Config) -> None:
    with pytest.raises(WrongShellError):
        validate_environment(win_config, FakeQuery({}))


def test_windows_package_mismatch(win_config: Config) -> None:
    outputs = mingw_outputs(PINNED_PACKAGES)
    outputs["pacman -Q mingw-w64-x86_64-headers-git"] = (
        "mingw-w64-x86_64-headers-git 9.0.0.6029.ecb4ff54-1\n"
    )
    query = FakeQuery(outputs)
    with pytest.raises(PackageVersionError) as exc:
        validate_environment(win_config, query)
    assert exc.value.package == "mingw-w64-x86_64-headers-git"
    assert exc.value.got == "mingw-w64-x86_64-headers-git 9.0.0.6029.ecb4ff54-1"
    assert exc.value.remediation == remediation(PINNED_PACKAGES)
    assert exc.value.remediation in str(exc.value)
    # crt is checked first, headers fails, nothing after it is queried
    assert len(query.calls) == 3


def test_windows_pacman_missing(win_config: Config) -> None:
    query = FakeQuery({"uname -a": MINGW_UNAME})
    with pytest.raises(CommandFailedError, match="Failed running pacman"):
        validate_environment(win_config, query)


def test_windows_no_pinned_packages(tree: SourceTree) -> None:
    config = Config(root=tree.root_dir, plat="win32", packages={})
    query = FakeQuery({"uname -a": MINGW_UNAME})
    validate_environment(config, query)
    assert query.calls == [["uname", "-a"]]


def test_darwin_only_checks_folders(tree: SourceTree) -> None:
    config = Config(root=tree.root_dir, plat="darwin")
    query = FakeQuery({"uname -a": LINUX_UNAME})
    validate_environment(config, query)
    assert query.calls == []


def test_remediation() -> None:
    lines = remediation(PINNED_PACKAGES).splitlines()
    assert len(lines) == 4
    assert lines[0] == (
        "    pacman -U /var/cache/pacman/pkg/"
        "mingw-w64-x86_64-crt-git-5.0.0.4745.d2384c2-1-any.pkg.tar.xz"
    )
