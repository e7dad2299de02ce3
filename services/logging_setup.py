from __future__ import annotations

import logging
import os
import sys
import threading
import time
import traceback
from contextlib import contextmanager
from typing import Any

from loguru import logger


LOG_FORMAT = (
	"{level.icon} <green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
	"<blue>{thread.name:^10}</blue> | "
	"[<level>{level:<8}</level>] | "
	"<white>{name}.{function}:{line}</white> | "
	"<level>{message}</level>"
)

DEFAULT_CONSOLE_LEVEL = "INFO"
DEFAULT_FILE_LEVEL = "DEBUG"

FILE_ROTATION = "10 MB"
FILE_RETENTION = 50

_LEVEL_NAMES = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

_LEVEL_COLORS = {
	"ERROR": "<fg #ff0000>",
	"WARNING": "<fg #f9ff5c>",
	"INFO": "<cyan>",
	"DEBUG": "<fg #1cfc03>",
	"SUCCESS": "<fg #00ff22>",
}


def parse_level(level_value: Any) -> str:
	"""
	Loguru level name for a stdlib level (logging.INFO) or a level name ("info").
	Anything unrecognised becomes INFO.
	"""
	if isinstance(level_value, bool):
		return DEFAULT_CONSOLE_LEVEL
	if isinstance(level_value, int):
		name = logging.getLevelName(level_value)
		return name if name in _LEVEL_NAMES else DEFAULT_CONSOLE_LEVEL
	if isinstance(level_value, str) and level_value.strip().upper() in _LEVEL_NAMES:
		return level_value.strip().upper()
	return DEFAULT_CONSOLE_LEVEL


def _resolve(explicit: str | int | None, env_name: str, default: str) -> str:
	return parse_level(explicit if explicit is not None else os.getenv(env_name, default))


def _log_uncaught(exc_info, where: str) -> None:
	try:
		logger.opt(exception=exc_info).critical(f"[{where}] - uncaught_exception")
	except Exception:
		# the sinks themselves are broken; stderr is all that is left
		sys.stderr.write(f"Uncaught exception ({where}):\n")
		traceback.print_exception(*exc_info, file=sys.stderr)


def _install_exception_hooks() -> None:
	"""Uncaught exceptions from the main thread and from snapshot/io threads end up in the log."""
	sys.excepthook = lambda exc_type, exc_value, exc_tb: _log_uncaught((exc_type, exc_value, exc_tb), "main")
	threading.excepthook = lambda args: _log_uncaught(
		(args.exc_type, args.exc_value, args.exc_traceback),
		f"thread:{getattr(args.thread, 'name', 'unknown')}",
	)


def setup_logging(
	app_name: str = "autogrant",
	log_dir: str = "log",
	log_level: str | int | None = None,
	file_level: str | int | None = None,
) -> str:
	"""
	Colored console sink plus a rotating, zip-compressed file sink in `log_dir`.
	Levels default to LOG_LEVEL / LOG_FILE_LEVEL. Returns the log file path.
	"""
	console_level = _resolve(log_level, "LOG_LEVEL", DEFAULT_CONSOLE_LEVEL)
	resolved_file_level = _resolve(file_level, "LOG_FILE_LEVEL", DEFAULT_FILE_LEVEL)

	os.makedirs(log_dir, exist_ok=True)
	log_path = os.path.join(log_dir, f"{app_name}.log")

	logger.remove()
	logger.configure(
		handlers=[
			{"sink": sys.stdout, "format": LOG_FORMAT, "colorize": True, "level": console_level},
			{
				"sink": log_path,
				"format": LOG_FORMAT,
				"rotation": FILE_ROTATION,
				"compression": "zip",
				"retention": FILE_RETENTION,
				"colorize": False,
				"level": resolved_file_level,
				# listener threads log too
				"enqueue": True,
			},
		]
	)
	for name, color in _LEVEL_COLORS.items():
		logger.level(name, color=color)
	_install_exception_hooks()

	logger.info(
		f"[setup_logging] - logger_initialized - app_name={app_name} console_level={console_level} "
		f"file_level={resolved_file_level} log_path={log_path}"
	)
	return log_path


def get_logger(component: str):
	return logger.bind(component=component)


def summarize_for_log(payload: Any, *, max_items: int = 10, max_text: int = 140) -> Any:
	"""Shorten documents and query specs before they go into a log line."""
	if payload is None:
		return None
	if isinstance(payload, dict):
		return {
			str(k): summarize_for_log(v, max_items=max_items, max_text=max_text)
			for k, v in list(payload.items())[:max_items]
		}
	if isinstance(payload, (list, tuple, set)):
		return [summarize_for_log(v, max_items=max_items, max_text=max_text) for v in list(payload)[:max_items]]
	text = str(payload)
	return f"{text[:max_text]}...({len(text)} chars)" if len(text) > max_text else text


@contextmanager
def log_timing(method_name: str, **context: Any):
	"""Debug-logs duration of a remote store call; failures are logged and re-raised."""
	context_txt = " ".join(f"{k}={summarize_for_log(v)}" for k, v in context.items())
	start = time.perf_counter()
	outcome = "end"
	try:
		yield
	except Exception:
		outcome = "failed"
		raise
	finally:
		duration_ms = round((time.perf_counter() - start) * 1000, 2)
		line = f"[{method_name}] - {outcome} - duration_ms={duration_ms} {context_txt}".strip()
		if outcome == "failed":
			logger.warning(line)
		else:
			logger.debug(line)
