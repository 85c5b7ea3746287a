# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
#
from __future__ import annotations

import pathlib
from typing import Callable, Mapping, Optional, Sequence

from torstatic.common import FOLDERS, CommandFailedError

LINUX_UNAME = "Linux builder 6.1.0-18-amd64 #1 SMP x86_64 GNU/Linux\n"
MINGW_UNAME = "MINGW64_NT-10.0-19045 builder 3.4.10.x86_64 2024-02-10 08:39 UTC x86_64 Msys\n"
MSYS_UNAME = "MSYS_NT-10.0-19045 builder 3.4.10.x86_64 2024-02-10 08:39 UTC x86_64 Msys\n"


class SourceTree:
    """
    A root directory holding the source folders.
    """

    def __init__(self, root_dir: pathlib.Path) -> None:
        self.root_dir = root_dir

    def make_folders(self, folders: Sequence[str] = FOLDERS) -> None:
        for folder in folders:
            (self.root_dir / folder).mkdir(parents=True, exist_ok=True)

    def add_file(self, name: str, contents: str = "", *relpath: str) -> pathlib.Path:
        file_path = (self.root_dir / pathlib.Path(*relpath) / name).resolve()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(contents)
        return file_path

    def add_makefile(self, folder: str, name: str = "Makefile") -> pathlib.Path:
        return self.add_file(name, "clean:\n\ttrue\n", folder)


class FakeRunner:
    """
    Stands in for ``torstatic.common.runcmd`` and records every call.

    :param fail_on: Called with the command and folder, the call fails when it
        returns True
    """

    def __init__(
        self, fail_on: Optional[Callable[[Sequence[str], str], bool]] = None
    ) -> None:
        self.calls: list[tuple[list[str], str, dict[str, str]]] = []
        self.fail_on = fail_on
        self.verbose: list[bool] = []

    def __call__(
        self,
        cmd: Sequence[str],
        folder: str = "",
        env: Optional[Mapping[str, str]] = None,
        verbose: bool = False,
        root: Optional[pathlib.Path] = None,
    ) -> None:
        self.calls.append((list(cmd), folder, dict(env or {})))
        self.verbose.append(verbose)
        if self.fail_on is not None and self.fail_on(cmd, folder):
            raise CommandFailedError(cmd, folder, 2)

    @property
    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _, _ in self.calls]

    @property
    def folders(self) -> list[str]:
        """
        The folders commands ran in, in order and without repeats.
        """
        seen: list[str] = []
        for _, folder, _ in self.calls:
            if folder and (not seen or seen[-1] != folder):
                seen.append(folder)
        return seen


class FakeQuery:
    """
    Stands in for ``torstatic.common.query`` with canned output.

    Commands without canned output fail as if the program was not found.
    """

    def __init__(self, outputs: Mapping[str, str]) -> None:
        self.outputs = dict(outputs)
        self.calls: list[list[str]] = []

    def __call__(self, cmd: Sequence[str]) -> str:
        self.calls.append(list(cmd))
        key = " ".join(cmd)
        if key not in self.outputs:
            raise CommandFailedError(cmd, returncode=127)
        return self.outputs[key]


def mingw_outputs(
    packages: Mapping[str, str], uname: str = MINGW_UNAME
) -> dict[str, str]:
    outputs = {"uname -a": uname}
    for name, version in packages.items():
        outputs[f"pacman -Q {name}"] = f"{name} {version}\n"
    return outputs
