"""EduBalance.

Enrollment balancing and conflict resolution engine for multi-tenant
education administration: section rebalancing plans, enrollment
integrity checks and an administrator override workflow.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
