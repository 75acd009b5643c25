#!/usr/bin/env python3
#
# nginx_agent/certs/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Certificate retrieval and on-disk storage."""
