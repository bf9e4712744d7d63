#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""GitHub engine package for verwatch."""

from .client import GitHubDispatcher, GitHubReleaseSource, create_http_client

__all__ = ["GitHubDispatcher", "GitHubReleaseSource", "create_http_client"]

# 🔼⚙️🔚
