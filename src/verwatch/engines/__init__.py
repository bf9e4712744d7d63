#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""verwatch Engines Package.

This package holds the capability protocols monitors depend on (release
sources, dispatchers, secret resolvers) and their implementations."""

from verwatch.engines.protocols import Dispatcher, EnvSecretResolver, ReleaseSource, SecretResolver

__all__ = ["Dispatcher", "EnvSecretResolver", "ReleaseSource", "SecretResolver"]

# 🔼⚙️🔚
