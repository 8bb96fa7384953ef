"""Logging helpers for the service and store layers."""

import logging


class QuietLogger(logging.LoggerAdapter):
    """Logger adapter whose calls never raise into the caller.

    Stdlib handlers already report emit errors through `handleError`;
    this also covers handlers that raise straight out of `emit`.
    """

    def log(self, level, msg, *args, **kwargs):
        try:
            super().log(level, msg, *args, **kwargs)
        except Exception:
            # a failed log line never changes the operation's result
            pass


def get_logger(name: str) -> QuietLogger:
    return QuietLogger(logging.getLogger(name), {})
