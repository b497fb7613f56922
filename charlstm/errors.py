# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Exceptions raised by charlstm.

- ConfigurationError: parameter shapes, vocabulary or hyper-parameters do not
  agree with what the model was configured for.
- ResourceError: a parameter or metadata file could not be read or written.
- MalformedCacheError: a trajectory cache handed to the backward pass is
  internally inconsistent.
"""


class ConfigurationError(ValueError):
    """Shape, vocabulary or hyper-parameter mismatch."""


class ResourceError(OSError):
    """Parameter or metadata file missing, unreadable or unwritable."""


class MalformedCacheError(ValueError):
    """Trajectory cache with inconsistent per-field contents."""
