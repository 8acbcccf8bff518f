"""KidTutor Analytics backend.

Learning analytics for children: daily aggregation of learning sessions
and on-demand learning, progress and insight reports for parents.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
