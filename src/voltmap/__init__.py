# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Voltmap - trust and verification engine for an EV charging-point directory.

The surrounding application (maps, station CRUD, charging sessions) feeds
community signals into this package:

  Votes (WORKING / NOT_WORKING / BUSY, append-only)
    → Summary (counts, leading vote, recency)
    → Primary status (one of four display states)
  Votes + reports + station activity
    → Trust score (0-100, labelled)
  Qualifying votes and reports
    → Trust events (idempotent per actor per window)
    → Actor reputation (NEW / NORMAL / TRUSTED)

HTTP entry point: ``voltmap serve``  (see voltmap.server.app)
"""

__version__ = "0.3.0"
