#!/usr/bin/env python3
#
# nginx_agent/utils/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Configuration, logging helpers and middleware."""
