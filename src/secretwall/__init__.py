# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""secretwall: share secrets anonymously behind a cookie-session login."""
