# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Server-side authentication.

This package provides:
- Password hashing/verification (argon2)
- The account store, persisted as a JSON array (data/users.json)
- Server-side sessions with signed cookies (itsdangerous)
"""
