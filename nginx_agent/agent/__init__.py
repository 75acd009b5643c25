#!/usr/bin/env python3
#
# nginx_agent/agent/__init__.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Lifecycle events, signatures and the reconciliation state machine."""
