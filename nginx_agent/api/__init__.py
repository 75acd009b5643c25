#!/usr/bin/env python3
#
# nginx_agent/api/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""HTTP surface: health probe and signed webhook."""
