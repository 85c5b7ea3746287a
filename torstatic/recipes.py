# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
The build and clean recipes for each source folder.

Recipes are plain data, looking one up never touches the filesystem or runs
anything. The dispatcher is responsible for carrying them out.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .common import Config, UnknownFolderError

BUILD = "build"
CLEAN = "clean"

ZLIB_WIN_MAKEFILE = "win32/Makefile.gcc"


class Command:
    """
    A single program invocation in a source folder.

    :param argv: The program followed by its arguments
    :type argv: list
    :param folder: The folder to run in, empty for the root directory
    :type folder: str
    :param env: Environment overrides for this invocation
    :type env: dict
    """

    __slots__ = ("_argv", "_folder", "_env")

    def __init__(
        self,
        argv: Iterable[str],
        folder: str = "",
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._argv: Tuple[str, ...] = tuple(argv)
        self._folder = folder
        self._env: Mapping[str, str] = MappingProxyType(dict(env or {}))

    @property
    def argv(self) -> Tuple[str, ...]:
        return self._argv

    @property
    def folder(self) -> str:
        return self._folder

    @property
    def env(self) -> Mapping[str, str]:
        """
        Read only view of the environment overrides.
        """
        return self._env

    @property
    def program(self) -> str:
        return self.argv[0]

    @property
    def args(self) -> Tuple[str, ...]:
        return self.argv[1:]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return (
            self.argv == other.argv
            and self.folder == other.folder
            and dict(self.env) == dict(other.env)
        )

    def __hash__(self) -> int:
        return hash((self.argv, self.folder, tuple(sorted(self.env.items()))))

    def __repr__(self) -> str:
        return "Command({!r}, folder={!r}, env={!r})".format(
            list(self.argv), self.folder, dict(self.env)
        )


class Recipe:
    """
    An ordered list of commands and the preparation they need.

    :param folder: The source folder this recipe belongs to
    :type folder: str
    :param commands: Commands to run in order
    :type commands: list
    :param remove: Paths, relative to the root, deleted before anything runs
    :type remove: list
    :param links: ``(check, command)`` pairs, the command creates a symlink and
        only runs when ``check`` (relative to the root) does not exist
    :type links: list
    :param makefile: When set, the recipe is skipped unless this makefile
        exists in the folder
    :type makefile: str
    """

    def __init__(
        self,
        folder: str,
        commands: Iterable[Command],
        remove: Iterable[str] = (),
        links: Iterable[Tuple[str, Command]] = (),
        makefile: Optional[str] = None,
    ) -> None:
        self.folder = folder
        self.commands: List[Command] = list(commands)
        self.remove: List[str] = list(remove)
        self.links: List[Tuple[str, Command]] = list(links)
        self.makefile = makefile

    def __repr__(self) -> str:
        return f"Recipe({self.folder!r}, {self.commands!r})"


def _commands(
    folder: str, cmds: Iterable[List[str]], env: Optional[Mapping[str, str]] = None
) -> List[Command]:
    return [Command(cmd, folder, env) for cmd in cmds]


def build_openssl(config: Config) -> Recipe:
    folder = "openssl"
    configure = [
        "sh",
        "./config",
        f"--prefix={config.prefix(folder)}",
        "no-shared",
        "no-dso",
        "no-zlib",
    ]
    if config.is_windows:
        configure[1] = "./Configure"
        configure.append("mingw64")
    return Recipe(
        folder,
        _commands(
            folder,
            [
                configure,
                ["make", "depend"],
                ["make"],
                ["make", "install"],
            ],
        ),
    )


def build_libevent(config: Config) -> Recipe:
    folder = "libevent"
    return Recipe(
        folder,
        _commands(
            folder,
            [
                ["sh", "-l", "./autogen.sh"],
                [
                    "sh",
                    "./configure",
                    f"--prefix={config.prefix(folder)}",
                    "--disable-shared",
                    "--enable-static",
                    "--with-pic",
                ],
                ["make"],
                ["make", "install"],
            ],
        ),
    )


def build_zlib(config: Config) -> Recipe:
    """
    Build zlib.

    The windows source tree has no usable configure script, the gcc makefile
    takes its install locations from the environment instead.
    """
    folder = "zlib"
    prefix = config.prefix(folder)
    if config.is_windows:
        env = {
            "PREFIX": prefix,
            "BINARY_PATH": f"{prefix}/bin",
            "INCLUDE_PATH": f"{prefix}/include",
            "LIBRARY_PATH": f"{prefix}/lib",
        }
        return Recipe(
            folder,
            _commands(
                folder,
                [
                    ["make", f"-f{ZLIB_WIN_MAKEFILE}"],
                    ["make", "install", f"-f{ZLIB_WIN_MAKEFILE}"],
                ],
                env,
            ),
        )
    return Recipe(
        folder,
        _commands(
            folder,
            [
                ["sh", "./configure", f"--prefix={prefix}"],
                ["make"],
                ["make", "install"],
            ],
        ),
    )


def build_xz(config: Config) -> Recipe:
    folder = "xz"
    return Recipe(
        folder,
        _commands(
            folder,
            [
                ["sh", "-l", "./autogen.sh"],
                [
                    "sh",
                    "./configure",
                    f"--prefix={config.prefix(folder)}",
                    "--disable-shared",
                    "--enable-static",
                    "--disable-doc",
                    "--disable-scripts",
                    "--disable-xz",
                    "--disable-xzdec",
                    "--disable-lzmadec",
                    "--disable-lzmainfo",
                    "--disable-lzma-links",
                ],
                ["make"],
                ["make", "install"],
            ],
        ),
    )


def build_tor(config: Config) -> Recipe:
    """
    Build tor.

    Tor is pointed at openssl's dist folder for zlib, so libz.a gets linked
    in there first.
    """
    folder = "tor"
    pwd = f"{config.posix_root}/{folder}"
    env: Dict[str, str] = {}
    if config.is_windows:
        env["LIBS"] = "-lcrypt32"
    link = Command(
        [
            "ln",
            "-s",
            f"{pwd}/../zlib/dist/lib/libz.a",
            f"{pwd}/../openssl/dist/lib/libz.a",
        ]
    )
    return Recipe(
        folder,
        _commands(
            folder,
            [
                ["sh", "-l", "./autogen.sh"],
                [
                    "sh",
                    "./configure",
                    f"--prefix={pwd}/dist",
                    "--disable-gcc-hardening",
                    "--enable-static-tor",
                    "--enable-static-libevent",
                    f"--with-libevent-dir={pwd}/../libevent/dist",
                    "--enable-static-openssl",
                    f"--with-openssl-dir={pwd}/../openssl/dist",
                    "--enable-static-zlib",
                    f"--with-zlib-dir={pwd}/../openssl/dist",
                    "--disable-system-torrc",
                    "--disable-asciidoc",
                ],
                ["make"],
                ["make", "install"],
            ],
            env,
        ),
        links=[("openssl/dist/lib/libz.a", link)],
    )


def clean_default(config: Config, folder: str) -> Recipe:
    """
    Run ``make clean`` when the folder has a makefile.

    Openssl's clean target leaves the installed libraries behind so those are
    removed up front. Zlib needs its prefix and, on windows, the gcc makefile.
    """
    args = ["make", "clean"]
    env: Dict[str, str] = {}
    makefile = "Makefile"
    remove: List[str] = []
    if folder == "openssl":
        remove.append("openssl/dist/lib")
    elif folder == "zlib":
        env["PREFIX"] = config.prefix(folder)
        if config.is_windows:
            makefile = ZLIB_WIN_MAKEFILE
            args.append(f"-f{ZLIB_WIN_MAKEFILE}")
    return Recipe(
        folder,
        [Command(args, folder, env)],
        remove=remove,
        makefile=makefile,
    )


BUILDERS: Dict[str, Callable[[Config], Recipe]] = {
    "openssl": build_openssl,
    "libevent": build_libevent,
    "zlib": build_zlib,
    "xz": build_xz,
    "tor": build_tor,
}


def recipe(action: str, folder: str, config: Config) -> Recipe:
    """
    Look up the recipe for an action on a folder.

    :param action: Either ``build`` or ``clean``
    :type action: str
    :param folder: The source folder
    :type folder: str
    :param config: The torstatic settings
    :type config: ``torstatic.common.Config``

    :raises UnknownFolderError: If the folder has no recipe
    """
    if folder not in BUILDERS:
        raise UnknownFolderError(folder)
    if action == BUILD:
        return BUILDERS[folder](config)
    elif action == CLEAN:
        return clean_default(config, folder)
    raise ValueError(f"Unknown action {action}")
