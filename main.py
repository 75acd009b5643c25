#!/usr/bin/env python3
#
# main.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

# nginx-cert-agent - certificate and site reconciler for nginx
# Entry point
#

import sys

import uvicorn
from nginx_agent.utils.config import ConfigValidationError, load_config

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Uvicorn logging dict-config that reuses the same format as the agent
_UVICORN_LOG_CONFIG: dict = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"default": {
			"format": _LOG_FORMAT,
			"datefmt": _DATE_FORMAT,
		},
	},
	"handlers": {
		"default": {
			"formatter": "default",
			"class": "logging.StreamHandler",
			"stream": "ext://sys.stdout",
		},
	},
	"loggers": {
		"uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
		"uvicorn.error": {"level": "INFO"},
		"uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": False},
	},
}

if __name__ == "__main__":
	try:
		cfg = load_config()
	except ConfigValidationError as exc:
		sys.stderr.write(f"[agent] {exc}\n")
		sys.exit(1)

	for _logger in _UVICORN_LOG_CONFIG["loggers"].values():
		_logger["level"] = cfg.log_level

	# Single worker: per-domain event serialisation is in-process
	uvicorn.run(
		"nginx_agent:create_app",
		host=cfg.host,
		port=cfg.port,
		factory=True,
		workers=1,
		log_config=_UVICORN_LOG_CONFIG,
	)
