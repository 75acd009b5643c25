#!/usr/bin/env python3
#
# nginx_agent/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""nginx-cert-agent - keeps nginx TLS sites in step with control-plane certificate events."""

from .main import create_app

__all__ = ["create_app"]
