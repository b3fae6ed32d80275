# rucli — Interactive and Script-Driven Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
rucli core package.

A small command shell: structural parser, expansion, pipelines and
redirects, control flow, background jobs and history, driven one line at a
time through ``Kernel.feed``.
"""

__version__ = "0.1.0"

from .kernel import FeedStatus as FeedStatus  # noqa: E402,F401 (re-export)
from .kernel import Kernel as Kernel  # noqa: E402,F401 (re-export)

__all__ = ["FeedStatus", "Kernel", "__version__"]
