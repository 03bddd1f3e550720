# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
splitimage: split-image build core.

Builds one firmware target as a loader and an application binary that share
library code, and produces the ROM ELF the application links against.
"""

__version__ = "0.1.0"
