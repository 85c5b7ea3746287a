# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
Turn ``build-<folder>`` and ``clean-<folder>`` commands into recipe runs.
"""
from __future__ import annotations

import logging
import shutil
from typing import Any, Callable, Dict, Type

from . import recipes
from .check import Query, validate_environment
from .common import (
    FOLDERS,
    CommandFailedError,
    Config,
    MissingFolderError,
    UnknownFolderError,
    UsageError,
    query,
    runcmd,
)

log = logging.getLogger(__name__)

ALL = "all"

USAGE = "Can be build-all, build-<folder>, clean-all, or clean-<folder>"

Runner = Callable[..., Any]


class Action:
    """
    A parsed command, one of ``Build`` or ``Clean``.

    :param target: A folder name or ``all``
    :type target: str
    """

    verb: str = ""

    def __init__(self, target: str) -> None:
        self.target = target

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Action):
            return NotImplemented
        return self.verb == other.verb and self.target == other.target

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.target!r})"

    def __str__(self) -> str:
        return f"{self.verb}-{self.target}"


class Build(Action):
    verb = recipes.BUILD


class Clean(Action):
    verb = recipes.CLEAN


ACTIONS: Dict[str, Type[Action]] = {
    recipes.BUILD: Build,
    recipes.CLEAN: Clean,
}


def check_target(target: str) -> None:
    """
    :raises UnknownFolderError: If target is not ``all`` or a known folder
    """
    if target != ALL and target not in FOLDERS:
        raise UnknownFolderError(target)


def parse_command(text: str) -> Action:
    """
    Parse the command line argument.

    :param text: ``build-all``, ``build-<folder>``, ``clean-all`` or
        ``clean-<folder>``
    :type text: str

    :return: The parsed action
    :rtype: ``torstatic.dispatch.Action``

    :raises UsageError: If the command does not start with ``build-`` or ``clean-``
    :raises UnknownFolderError: If the folder is not known
    """
    verb, sep, target = text.partition("-")
    if not sep or verb not in ACTIONS:
        raise UsageError(f"Invalid command: {text}. {USAGE}")
    check_target(target)
    return ACTIONS[verb](target)


class Dispatcher:
    """
    Carry out build and clean actions one recipe at a time.

    :param config: The torstatic settings
    :type config: ``torstatic.common.Config``
    :param run: Called for every command with the same signature as
        ``torstatic.common.runcmd``
    :type run: callable
    """

    def __init__(self, config: Config, run: Runner = runcmd) -> None:
        self.config = config
        self.run = run

    def build(self, target: str) -> None:
        self.apply(recipes.BUILD, target)

    def clean(self, target: str) -> None:
        self.apply(recipes.CLEAN, target)

    def dispatch(self, action: Action) -> None:
        self.apply(action.verb, action.target)

    def apply(self, verb: str, target: str) -> None:
        """
        Apply an action to a folder, or to every folder in order for ``all``.

        The first failure stops everything, folders after it are left alone.
        """
        check_target(target)
        label = "building" if verb == recipes.BUILD else "cleaning"
        log.info("*** %s %s ***", label.capitalize(), target)
        try:
            if target == ALL:
                for folder in FOLDERS:
                    self.apply(verb, folder)
            else:
                self.run_recipe(recipes.recipe(verb, target, self.config))
        finally:
            log.info("*** Done %s %s ***", label, target)

    def run_recipe(self, recipe: recipes.Recipe) -> None:
        """
        Prepare the folder and run each command of the recipe in turn.
        """
        root = self.config.root
        for path in recipe.remove:
            log.debug("Removing %s", root / path)
            try:
                shutil.rmtree(root / path)
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise CommandFailedError(
                    ["rm", "-rf", path], message=f"Unable to remove {path}: {exc}"
                ) from exc
        if recipe.makefile is not None:
            if not (root / recipe.folder).is_dir():
                raise MissingFolderError(recipe.folder)
            if not (root / recipe.folder / recipe.makefile).exists():
                log.info("Skipping clean, makefile not present")
                return
        for check, link in recipe.links:
            if (root / check).exists():
                continue
            try:
                self.run_command(link)
            except CommandFailedError as exc:
                raise CommandFailedError(
                    link.argv,
                    link.folder,
                    exc.returncode,
                    message=f"Unable to make symlink: {exc}",
                ) from exc
        for command in recipe.commands:
            self.run_command(command)

    def run_command(self, command: recipes.Command) -> None:
        self.run(
            list(command.argv),
            folder=command.folder,
            env=command.env,
            verbose=self.config.verbose,
            root=self.config.root,
        )


def execute(
    action: Action,
    config: Config,
    run: Runner = runcmd,
    query: Query = query,
) -> None:
    """
    Validate the environment and then carry out the action.

    Nothing is run when the target is unknown or validation fails.

    :param action: The parsed action
    :type action: ``torstatic.dispatch.Action``
    :param config: The torstatic settings
    :type config: ``torstatic.common.Config``
    """
    check_target(action.target)
    validate_environment(config, query)
    Dispatcher(config, run).dispatch(action)
