# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication core.

This package provides:
- Credential hashing/verification (argon2)
- User records and the store protocol (+ in-memory store)
- Server-side sessions carried in signed cookies (itsdangerous)
- The authenticator that ties them together
"""
