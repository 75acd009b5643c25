#!/usr/bin/env python3
#
# nginx_agent/nginx/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Nginx site rendering, storage and reload."""
