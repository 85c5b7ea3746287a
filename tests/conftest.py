# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
#
from __future__ import annotations

import logging
import pathlib

import pytest

from torstatic.common import PINNED_PACKAGES, Config
from tests.helpers import LINUX_UNAME, FakeQuery, FakeRunner, SourceTree, mingw_outputs

log = logging.getLogger(__name__)


@pytest.fixture
def tree(tmp_path: pathlib.Path) -> SourceTree:
    source_tree = SourceTree(tmp_path)
    source_tree.make_folders()
    return source_tree


@pytest.fixture
def config(tree: SourceTree) -> Config:
    return Config(root=tree.root_dir, plat="linux")


@pytest.fixture
def win_config(tree: SourceTree) -> Config:
    return Config(root=tree.root_dir, plat="win32")


@pytest.fixture
def fake_run() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def linux_query() -> FakeQuery:
    return FakeQuery({"uname -a": LINUX_UNAME})


@pytest.fixture
def mingw_query() -> FakeQuery:
    return FakeQuery(mingw_outputs(PINNED_PACKAGES))
